from datetime import datetime, timedelta

from sqlmodel import select

from wisdom_api.models.affiliate import Affiliate, AffiliateStatus, Commission
from wisdom_api.models.purchase import Purchase

from tests.helpers.factories import auth_headers, make_user


def _confirm(client, user, intent_id, amount=1200, **product):
    body = {"paymentIntentId": intent_id, "amount": amount}
    body.update(product or {"book_id": "book-1"})
    return client.post("/payments/confirm", json=body, headers=auth_headers(user))


def _approved_affiliate(session, owner, code="AFF-ABCDEF123456", rate=20):
    affiliate = Affiliate(user_id=owner.id, affiliate_code=code, commission_rate=rate,
                          status=AffiliateStatus.APPROVED)
    session.add(affiliate)
    session.commit()
    session.refresh(affiliate)
    return affiliate


def test_create_intent_passes_metadata(client, session, stripe_stub):
    user = make_user(session, "buyer@example.com")
    r = client.post(
        "/payments/create-intent",
        json={"amount": 999, "article_id": "art-7", "affiliate_code": "aff-abc"},
        headers=auth_headers(user),
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["paymentIntentId"] == "pi_test_1"
    assert data["clientSecret"]
    created = stripe_stub.created[0]
    assert created["amount"] == 999
    assert created["currency"] == "usd"
    assert created["metadata"] == {
        "user_id": str(user.id),
        "content_type": "article",
        "content_id": "art-7",
        "affiliate_code": "AFF-ABC",
    }


def test_create_intent_requires_exactly_one_product(client, session, stripe_stub):
    user = make_user(session, "buyer@example.com")
    none = client.post("/payments/create-intent", json={"amount": 500}, headers=auth_headers(user))
    both = client.post(
        "/payments/create-intent",
        json={"amount": 500, "book_id": "b", "course_id": "c"},
        headers=auth_headers(user),
    )
    assert none.status_code == both.status_code == 400
    assert none.json()["code"] == "missing_product_reference"
    assert stripe_stub.created == []


def test_create_intent_requires_auth(client, stripe_stub):
    r = client.post("/payments/create-intent", json={"amount": 500, "book_id": "b"})
    assert r.status_code == 401


def test_confirm_records_purchase_once(client, session, stripe_stub, outbox):
    user = make_user(session, "buyer@example.com")
    stripe_stub.add_intent("pi_ok", amount=1200, metadata={"user_id": str(user.id)})

    first = _confirm(client, user, "pi_ok")
    assert first.status_code == 200, first.text
    assert first.json()["created"] is True
    assert first.json()["purchase"]["book_id"] == "book-1"
    assert first.json()["purchase"]["status"] == "completed"

    second = _confirm(client, user, "pi_ok")
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["purchase"]["id"] == first.json()["purchase"]["id"]

    rows = session.exec(select(Purchase).where(Purchase.stripe_payment_id == "pi_ok")).all()
    assert len(rows) == 1
    # Already-recorded payments short-circuit before Stripe is asked again
    assert stripe_stub.retrieve_calls == 1
    assert len([m for m in outbox.messages if m["subject"].startswith("Purchase Receipt")]) == 1


def test_confirm_rejects_unsucceeded_payment(client, session, stripe_stub):
    user = make_user(session, "buyer@example.com")
    stripe_stub.add_intent("pi_pending", status="requires_payment_method", metadata={"user_id": str(user.id)})

    r = _confirm(client, user, "pi_pending")
    assert r.status_code == 400
    assert r.json()["code"] == "payment_not_succeeded"
    assert session.exec(select(Purchase)).all() == []


def test_confirm_rejects_amount_mismatch(client, session, stripe_stub):
    user = make_user(session, "buyer@example.com")
    stripe_stub.add_intent("pi_cheap", amount=100, metadata={"user_id": str(user.id)})

    r = _confirm(client, user, "pi_cheap", amount=1200)
    assert r.status_code == 400
    assert r.json()["code"] == "payment_error"


def test_confirm_rejects_someone_elses_payment(client, session, stripe_stub):
    owner = make_user(session, "owner@example.com")
    thief = make_user(session, "thief@example.com")
    stripe_stub.add_intent("pi_theirs", metadata={"user_id": str(owner.id)})

    r = _confirm(client, thief, "pi_theirs")
    assert r.status_code == 400
    assert session.exec(select(Purchase)).all() == []


def test_confirm_missing_product_reference(client, session, stripe_stub):
    user = make_user(session, "buyer@example.com")
    stripe_stub.add_intent("pi_ok", metadata={"user_id": str(user.id)})
    r = client.post(
        "/payments/confirm",
        json={"paymentIntentId": "pi_ok", "amount": 1200},
        headers=auth_headers(user),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "missing_product_reference"


def test_confirm_unknown_payment_reference(client, session, stripe_stub):
    user = make_user(session, "buyer@example.com")
    r = _confirm(client, user, "pi_missing")
    assert r.status_code == 400
    assert r.json()["code"] == "payment_error"


def test_referred_purchase_earns_commission(client, session, stripe_stub):
    referrer = make_user(session, "referrer@example.com")
    buyer = make_user(session, "buyer@example.com")
    affiliate = _approved_affiliate(session, referrer, rate=25)
    stripe_stub.add_intent(
        "pi_ref", amount=1999,
        metadata={"user_id": str(buyer.id), "affiliate_code": affiliate.affiliate_code},
    )

    r = _confirm(client, buyer, "pi_ref", amount=1999)
    assert r.status_code == 200, r.text

    commissions = session.exec(select(Commission)).all()
    assert len(commissions) == 1
    assert commissions[0].affiliate_id == affiliate.id
    # 25% of 1999 = 499.75, rounded half-up
    assert commissions[0].amount == 500


def test_pending_affiliate_earns_nothing(client, session, stripe_stub):
    referrer = make_user(session, "referrer@example.com")
    buyer = make_user(session, "buyer@example.com")
    affiliate = _approved_affiliate(session, referrer)
    affiliate.status = AffiliateStatus.PENDING
    session.add(affiliate)
    session.commit()
    stripe_stub.add_intent(
        "pi_ref", metadata={"user_id": str(buyer.id), "affiliate_code": affiliate.affiliate_code},
    )

    assert _confirm(client, buyer, "pi_ref").status_code == 200
    assert session.exec(select(Commission)).all() == []


def test_self_referral_earns_nothing(client, session, stripe_stub):
    user = make_user(session, "self@example.com")
    affiliate = _approved_affiliate(session, user)
    stripe_stub.add_intent(
        "pi_self", metadata={"user_id": str(user.id), "affiliate_code": affiliate.affiliate_code},
    )

    r = _confirm(client, user, "pi_self")
    assert r.status_code == 200
    assert r.json()["purchase"]["status"] == "completed"
    assert session.exec(select(Commission)).all() == []


def test_list_purchases_is_scoped_to_caller(client, session, stripe_stub):
    alice = make_user(session, "alice@example.com")
    bob = make_user(session, "bob@example.com")
    stripe_stub.add_intent("pi_a", metadata={"user_id": str(alice.id)})
    stripe_stub.add_intent("pi_b", metadata={"user_id": str(bob.id)})
    _confirm(client, alice, "pi_a", course_id="course-1")
    _confirm(client, bob, "pi_b")

    r = client.get("/payments/purchases", headers=auth_headers(alice))
    assert r.status_code == 200
    purchases = r.json()["purchases"]
    assert [p["stripe_payment_id"] for p in purchases] == ["pi_a"]
    assert purchases[0]["course_id"] == "course-1"


def test_list_purchases_newest_first(client, session):
    user = make_user(session, "collector@example.com")
    older = Purchase(user_id=user.id, amount=500, stripe_payment_id="pi_old", book_id="book-1",
                     created_at=datetime(2024, 1, 1, 9, 0))
    newer = Purchase(user_id=user.id, amount=700, stripe_payment_id="pi_new", article_id="art-1",
                     created_at=datetime(2024, 3, 1, 9, 0))
    session.add(older)
    session.add(newer)
    session.commit()

    r = client.get("/payments/purchases", headers=auth_headers(user))
    assert r.status_code == 200
    assert [p["stripe_payment_id"] for p in r.json()["purchases"]] == ["pi_new", "pi_old"]


def test_naive_utc_timestamps_round_trip(session):
    user = make_user(session, "clock@example.com")
    purchase = Purchase(user_id=user.id, amount=100, stripe_payment_id="pi_clock", course_id="c-1")
    session.add(purchase)
    session.commit()
    session.expire_all()

    stored = session.get(Purchase, purchase.id)
    assert stored.created_at.tzinfo is None
    assert abs(datetime.utcnow() - stored.created_at) < timedelta(minutes=1)
