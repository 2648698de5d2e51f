"""Run the API with uvicorn: ``python -m wisdom_api``."""
import uvicorn

from wisdom_api.core.config import settings


def main() -> None:
    uvicorn.run(
        "wisdom_api.app:app",
        host="0.0.0.0",
        port=settings.PORT,
        proxy_headers=True,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
    )


if __name__ == "__main__":
    main()
