#!/usr/bin/env python3
"""Seed a local database with CRM staff, clients and a few conversations."""

import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from app.auth import get_password_hash
from app.database import AsyncSessionLocal, create_tables
from app.models.user import UserRole
from app.repositories.user_repository import UserRepository
from app.services.message_service import MessageService

DEFAULT_PASSWORD = "password123"

SEED_USERS = [
    ("Alice", "alice@example.com", UserRole.ADMIN),
    ("Diana", "diana@example.com", UserRole.ADMIN),
    ("Bob", "bob@example.com", UserRole.CLIENT),
    ("Charlie", "charlie@example.com", UserRole.CLIENT),
    ("Eve", "eve@example.com", UserRole.CLIENT),
]

# (sender, receiver, content) by first name
SEED_MESSAGES = [
    ("Alice", "Bob", "Hi Bob! Your invoice for March is ready."),
    ("Bob", "Alice", "Thanks Alice, I'll take a look today."),
    ("Alice", "Bob", "Let me know if anything looks off."),
    ("Diana", "Charlie", "Welcome aboard, Charlie!"),
    ("Charlie", "Diana", "Glad to be here. When can we schedule a call?"),
    ("Eve", "Alice", "Could you resend the last receipt?"),
]


async def seed_users():
    users = {}
    async with AsyncSessionLocal() as db:
        repo = UserRepository(db)
        for name, email, role in SEED_USERS:
            user = await repo.get_by_email(email)
            if user is None:
                user = await repo.create(
                    name=name,
                    email=email,
                    hashed_password=get_password_hash(DEFAULT_PASSWORD),
                    role=role,
                )
                print(f"  + {role.value:<6} {name} ({user.id})")
            else:
                print(f"  = {role.value:<6} {name} already exists ({user.id})")
            users[name] = user
    return users


async def seed_messages(users):
    async with AsyncSessionLocal() as db:
        service = MessageService(db)
        for sender, receiver, content in SEED_MESSAGES:
            await service.append(users[sender].id, users[receiver].id, content)
            print(f"  {sender} -> {receiver}: {content[:40]}")
    return len(SEED_MESSAGES)


async def main():
    print("Seeding CRM messaging data")
    try:
        await create_tables()
        print("Users:")
        users = await seed_users()
        print("Messages:")
        count = await seed_messages(users)
    except Exception as e:
        print(f"Seeding failed: {e}")
        raise

    print(f"\nDone: {len(users)} users, {count} messages. Password for everyone: {DEFAULT_PASSWORD}")
    print("API docs:  http://localhost:8000/docs")
    print("WebSocket: ws://localhost:8000/api/v1/ws/chat?token=<jwt>")


if __name__ == "__main__":
    asyncio.run(main())
