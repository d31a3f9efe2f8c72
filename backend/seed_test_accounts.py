#!/usr/bin/env python3
"""Create the trainer / customer / admin test accounts and built-in templates.

Safe to run repeatedly: existing accounts get their password and role reset,
the trainer/customer link is reactivated and missing templates are added.
"""
import argparse
import asyncio

from app.core.auth import get_password_hash
from app.db.base import SessionLocal
from app.db.session import create_tables
from app.models.user import User, TrainerCustomerRelationship
from app.services.protocols.template_engine import ProtocolTemplateEngine

TEST_ACCOUNTS = [
    {"email": "trainer.test@evofitmeals.com", "password": "TestTrainer123!", "role": "trainer", "name": "Test Trainer"},
    {"email": "customer.test@evofitmeals.com", "password": "TestCustomer123!", "role": "customer", "name": "Test Customer"},
    {"email": "admin.test@evofitmeals.com", "password": "AdminPass123!", "role": "admin", "name": "Test Admin"},
]


def upsert_user(db, email, password, role, name):
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, role=role, name=name, password_hash=get_password_hash(password))
        db.add(user)
        print(f"Creating {role}: {email}")
    else:
        user.password_hash = get_password_hash(password)
        user.role = role
        user.name = name
        print(f"Updating {role}: {email}")
    db.flush()
    return user


def link_trainer_customer(db, trainer, customer):
    link = (
        db.query(TrainerCustomerRelationship)
        .filter(
            TrainerCustomerRelationship.trainer_id == trainer.id,
            TrainerCustomerRelationship.customer_id == customer.id,
        )
        .first()
    )
    if link is None:
        link = TrainerCustomerRelationship(
            trainer_id=trainer.id,
            customer_id=customer.id,
            notes="Test account relationship",
        )
        db.add(link)
    else:
        link.status = "active"
    db.flush()
    return link


def seed(db, accounts=TEST_ACCOUNTS):
    """Upsert accounts, link the trainer to the customer and seed templates"""
    users = {}
    try:
        for account in accounts:
            users[account["role"]] = upsert_user(db, **account)
        if "trainer" in users and "customer" in users:
            link_trainer_customer(db, users["trainer"], users["customer"])
        db.commit()
    except Exception:
        db.rollback()
        raise
    added = ProtocolTemplateEngine(db).seed_builtin_templates()
    print(f"Seeded {added} new protocol templates")
    return users


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed protocol hub test accounts")
    parser.add_argument("--create-tables", action="store_true", help="create missing tables first")
    args = parser.parse_args(argv)

    if args.create_tables:
        asyncio.run(create_tables())

    db = SessionLocal()
    try:
        seed(db)
        print("✅ Test accounts ready")
        for account in TEST_ACCOUNTS:
            print(f"   {account['role']:<9} {account['email']} / {account['password']}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
