# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from app.cli.seed_demo import seed_demo
from app.db import Base, engine


def main() -> None:
    p = argparse.ArgumentParser(description="Seed a demo admin and portfolio")
    p.add_argument("--admin-email", default="admin@demo.local")
    p.add_argument("--admin-password", default="demo-pass")
    p.add_argument("--company-name", default="Demo Rentals")
    p.add_argument("--create-schema", action="store_true", help="create tables without running migrations")
    args = p.parse_args()

    if args.create_schema:
        Base.metadata.create_all(bind=engine)

    out = seed_demo(
        admin_email=args.admin_email,
        admin_password=args.admin_password,
        company_name=args.company_name,
    )
    print(
        {
            "ok": True,
            "admin_email": out.admin_email,
            "company_id": out.company_id,
            "tokens": out.tokens,
        }
    )


if __name__ == "__main__":
    main()
