"""
Database seeding script for initial accounts.

Creates one ADMIN, one FINANCE and two salaried EMPLOYEE accounts for
development, and prints a bearer token for each (tokens are normally
issued by the identity service).
Run this script after database is set up but before first use.
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.db.session import AsyncSessionLocal
from fincore.app.core.jwt import create_access_token
from fincore.app.models.account import Account
from fincore.app.models.enums import UserRole

SEED_ACCOUNTS = [
    {"username": "admin", "full_name": "Operations Admin", "role": UserRole.ADMIN,
     "department": "Admin", "monthly_salary": Decimal("0")},
    {"username": "finance", "full_name": "Finance Officer", "role": UserRole.FINANCE,
     "department": "Finance", "monthly_salary": Decimal("0")},
    {"username": "jnakato", "full_name": "Joan Nakato", "role": UserRole.EMPLOYEE,
     "department": "Operations", "monthly_salary": Decimal("1040000"), "phone_number": "256772000101"},
    {"username": "pokello", "full_name": "Peter Okello", "role": UserRole.EMPLOYEE,
     "department": "Warehouse", "monthly_salary": Decimal("780000"), "phone_number": "256701000202"},
]


async def seed_accounts(db: AsyncSession) -> list[Account]:
    """
    Insert the seed accounts that do not exist yet.

    Returns:
        The accounts created by this call (empty when already seeded)
    """
    created = []
    for fields in SEED_ACCOUNTS:
        result = await db.execute(select(Account).where(Account.username == fields["username"]))
        if result.scalar_one_or_none():
            continue

        account = Account(email=f"{fields['username']}@fincore.local", is_active=True, **fields)
        db.add(account)
        created.append(account)

    if created:
        await db.commit()
    return created


def token_for(account: Account) -> str:
    return create_access_token(
        data={"sub": account.username, "user_id": account.id, "role": account.role.value}
    )


async def main():
    async with AsyncSessionLocal() as db:
        print("🌱 Starting account seeding...")
        created = await seed_accounts(db)

        if not created:
            print("ℹ️  Accounts already exist, skipping seeding")
            return

        print("\n🎉 Account seeding completed successfully!")
        for account in created:
            print(f"  - {account.role.value:<8} {account.username:<10} Bearer {token_for(account)}")


if __name__ == "__main__":
    asyncio.run(main())
