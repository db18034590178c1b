from __future__ import annotations

import os
from decimal import Decimal

from sqlalchemy import select

from backend.app.core.security import get_password_hash
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.db.models.models_v1 import Category, Organization, Product, User
from backend.app.db.models.core_types import UserRole

DEMO_PRODUCTS = [
    # (category, name, sku, cost, price, stock, minimum)
    ("Electronics", "Smartphone X", "ELEC-001", "350.00", "499.00", 25, 10),
    ("Electronics", "USB-C Charger", "ELEC-002", "8.50", "19.90", 4, 15),
    ("Office", "A4 Paper Ream", "OFF-001", "3.20", "5.99", 120, 40),
    ("Office", "Ballpoint Pens (box)", "OFF-002", "2.10", "4.50", 0, 20),
]


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def run_seed():
    init_db()
    db = SessionLocal()
    try:
        # 1) Organization "Demo"
        org = db.scalar(select(Organization).where(Organization.name == "Demo"))
        if not org:
            org = Organization(name="Demo")
            db.add(org)
            db.commit()

        # 2) Admin user
        email = os.getenv("SEED_ADMIN_EMAIL", "admin@demo.com")
        admin = db.scalar(select(User).where(User.email == email, User.organization_id == org.id))
        if not admin:
            admin = User(
                organization_id=org.id,
                email=email,
                name="Admin",
                password_hash=get_password_hash(os.getenv("SEED_ADMIN_PASSWORD", "admin123")),
                role=UserRole.admin,
            )
            db.add(admin)
            db.commit()

        # 3) Catalog
        categories: dict[str, Category] = {}
        for cat_name, name, sku, cost, price, stock, minimum in DEMO_PRODUCTS:
            if cat_name not in categories:
                cat = db.scalar(
                    select(Category).where(Category.organization_id == org.id, Category.name == cat_name)
                )
                if not cat:
                    cat = Category(organization_id=org.id, name=cat_name)
                    db.add(cat)
                    db.flush()
                categories[cat_name] = cat

            exists = db.scalar(select(Product).where(Product.organization_id == org.id, Product.sku == sku))
            if not exists:
                db.add(
                    Product(
                        organization_id=org.id,
                        category_id=categories[cat_name].id,
                        name=name,
                        sku=sku,
                        cost_price=Decimal(cost),
                        selling_price=Decimal(price),
                        current_stock=stock,
                        minimum_stock=minimum,
                    )
                )
        db.commit()

        print(f"SEED OK: organization=Demo, admin={email}")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
