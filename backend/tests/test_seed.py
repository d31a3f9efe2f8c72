"""Tests for the test-account seed script."""

from app.core.auth import verify_password
from app.models.template import ProtocolTemplate
from app.models.user import TrainerCustomerRelationship, User
from seed_test_accounts import TEST_ACCOUNTS, seed


class TestSeed:
    def test_creates_accounts_link_and_templates(self, db):
        users = seed(db)
        assert set(users) == {"trainer", "customer", "admin"}
        assert db.query(User).count() == 3
        link = db.query(TrainerCustomerRelationship).one()
        assert link.trainer_id == users["trainer"].id
        assert link.customer_id == users["customer"].id
        assert db.query(ProtocolTemplate).count() == 5

    def test_is_idempotent_and_resets_passwords(self, db):
        seed(db)
        trainer = db.query(User).filter(User.role == "trainer").one()
        trainer.password_hash = "broken"
        db.query(TrainerCustomerRelationship).one().status = "inactive"
        db.commit()

        seed(db)
        assert db.query(User).count() == 3
        assert db.query(TrainerCustomerRelationship).one().status == "active"
        account = next(a for a in TEST_ACCOUNTS if a["role"] == "trainer")
        assert verify_password(account["password"], db.query(User).filter(User.role == "trainer").one().password_hash)

    def test_seeded_trainer_can_log_in(self, client, db):
        seed(db)
        account = next(a for a in TEST_ACCOUNTS if a["role"] == "trainer")
        response = client.post("/api/auth/login", json={"email": account["email"], "password": account["password"]})
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "trainer"
