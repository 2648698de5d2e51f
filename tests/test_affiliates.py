import re
from uuid import uuid4

from sqlmodel import select

from wisdom_api.models.admin_log import AdminActionLog, AdminActionType
from wisdom_api.models.affiliate import Affiliate, AffiliateStatus, Commission
from wisdom_api.models.purchase import Purchase
from wisdom_api.services.affiliates import commission_amount

from tests.helpers.factories import auth_headers, make_user


def _register(client, user, **body):
    return client.post("/affiliates/register", json=body or None, headers=auth_headers(user))


def test_register_creates_pending_affiliate(client, session):
    user = make_user(session, "promoter@example.com")
    r = _register(client, user)
    assert r.status_code == 201, r.text
    affiliate = r.json()["affiliate"]
    assert affiliate["status"] == "pending"
    assert affiliate["commission_rate"] == 20
    assert re.fullmatch(r"AFF-[0-9A-F]{12}", affiliate["affiliate_code"])


def test_register_twice_conflicts(client, session):
    user = make_user(session, "promoter@example.com")
    assert _register(client, user, commission_rate=30).status_code == 201
    r = _register(client, user)
    assert r.status_code == 409
    assert r.json()["code"] == "already_registered"
    assert len(session.exec(select(Affiliate)).all()) == 1


def test_register_rejects_out_of_range_rate(client, session):
    user = make_user(session, "promoter@example.com")
    assert _register(client, user, commission_rate=150).status_code == 400


def test_admin_approves_and_action_is_logged(client, session):
    admin = make_user(session, "admin@example.com", role="admin")
    user = make_user(session, "promoter@example.com")
    affiliate_id = _register(client, user).json()["affiliate"]["id"]

    pending = client.get("/affiliates/pending", headers=auth_headers(admin))
    assert pending.status_code == 200
    assert pending.json()["count"] == 1
    assert pending.json()["pendingAffiliates"][0]["email"] == "promoter@example.com"

    r = client.post("/affiliates/approve", json={"affiliate_id": affiliate_id}, headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    assert r.json()["affiliate"]["status"] == "approved"
    assert r.json()["affiliate"]["approved_at"] is not None

    logs = session.exec(select(AdminActionLog)).all()
    assert len(logs) == 1
    assert logs[0].action == AdminActionType.APPROVE_AFFILIATE
    assert logs[0].admin_user_id == admin.id
    assert logs[0].resource_id == affiliate_id

    assert client.get("/affiliates/pending", headers=auth_headers(admin)).json()["count"] == 0


def test_admin_email_grants_review_rights(client, session):
    # ADMIN_EMAIL is configured by the test environment
    admin = make_user(session, "root@wisdomhub.test")
    user = make_user(session, "promoter@example.com")
    affiliate_id = _register(client, user).json()["affiliate"]["id"]

    r = client.post(
        "/affiliates/reject",
        json={"affiliate_id": affiliate_id, "reason": "Spam site"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["affiliate"]["status"] == "rejected"
    assert r.json()["affiliate"]["rejection_reason"] == "Spam site"
    log = session.exec(select(AdminActionLog)).one()
    assert log.action == AdminActionType.REJECT_AFFILIATE
    assert log.details == "Spam site"


def test_review_requires_admin(client, session):
    user = make_user(session, "promoter@example.com")
    affiliate_id = _register(client, user).json()["affiliate"]["id"]

    r = client.post("/affiliates/approve", json={"affiliate_id": affiliate_id}, headers=auth_headers(user))
    assert r.status_code == 403
    assert client.get("/affiliates/pending", headers=auth_headers(user)).status_code == 403
    assert session.exec(select(AdminActionLog)).all() == []

    session.expire_all()
    assert session.exec(select(Affiliate)).one().status == AffiliateStatus.PENDING


def test_approve_unknown_affiliate_is_not_found(client, session):
    admin = make_user(session, "admin@example.com", role="admin")
    r = client.post("/affiliates/approve", json={"affiliate_id": str(uuid4())}, headers=auth_headers(admin))
    assert r.status_code == 404


def test_stats_and_referral_link(client, session):
    owner = make_user(session, "promoter@example.com", name="Pat")
    buyer = make_user(session, "buyer@example.com")
    affiliate = Affiliate(user_id=owner.id, affiliate_code="AFF-0011223344AA", status=AffiliateStatus.APPROVED)
    session.add(affiliate)
    session.commit()
    purchase = Purchase(user_id=buyer.id, amount=2500, stripe_payment_id="pi_1", article_id="a-1",
                        affiliate_code=affiliate.affiliate_code)
    session.add(purchase)
    session.commit()
    session.add(Commission(affiliate_id=affiliate.id, purchase_id=purchase.id, amount=500))
    session.commit()

    r = client.get("/affiliates/aff-0011223344aa/stats", headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["affiliate"]["name"] == "Pat"
    assert data["statistics"] == {
        "totalCommissions": 1,
        "totalEarnings": 500,
        "pendingEarnings": 500,
        "paidEarnings": 0,
    }
    assert data["recentSales"][0]["commission"] == 500
    assert data["recentSales"][0]["productType"] == "article"

    # Other users cannot see someone else's earnings
    assert client.get("/affiliates/AFF-0011223344AA/stats", headers=auth_headers(buyer)).status_code == 403

    link = client.get("/affiliates/AFF-0011223344AA/referral-link")
    assert link.status_code == 200
    assert link.json()["referralLink"].endswith("?ref=AFF-0011223344AA")
    assert "AFF-0011223344AA" in link.json()["shareText"]


def test_unknown_code_is_not_found(client, session):
    admin = make_user(session, "admin@example.com", role="admin")
    assert client.get("/affiliates/AFF-NOPE/stats", headers=auth_headers(admin)).status_code == 404
    assert client.get("/affiliates/AFF-NOPE/referral-link").status_code == 404


def test_commission_amount_rounds_half_up():
    assert commission_amount(1000, 20) == 200
    assert commission_amount(1999, 25) == 500
    assert commission_amount(10, 25) == 3
    assert commission_amount(0, 50) == 0
