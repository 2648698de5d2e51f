"""HTTP routers; attached to the app in :mod:`wisdom_api.routing`."""
