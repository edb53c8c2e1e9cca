"""Create database schema and seed demo users for development."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from videomeeting.db.session import SessionLocal, engine
from videomeeting.models.base import Base
from videomeeting.models.user import User

USERS = [
	{
		"id": "user-ava",
		"name": "Ava Khan",
		"email": "ava.khan@example.com",
	},
	{
		"id": "user-daniel",
		"name": "Daniel Lee",
		"email": "daniel.lee@example.com",
	},
	{
		"id": "user-sofia",
		"name": "Sofia Rehman",
		"email": "sofia.rehman@example.com",
	},
]


async def create_schema() -> None:
	"""Create the database schema if it does not already exist."""

	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)


async def seed_users() -> None:
	"""Insert or update demo users that can host and join rooms."""

	async with SessionLocal() as session:
		async with session.begin():
			for user_data in USERS:
				user = await session.get(User, user_data["id"])
				if user is None:
					user = User(
						id=user_data["id"],
						name=user_data["name"],
						email=user_data["email"],
						created_at=datetime.now(timezone.utc),
					)
					session.add(user)
				else:
					user.name = user_data["name"]
					user.email = user_data["email"]
					session.add(user)


async def main() -> None:
	await create_schema()
	await seed_users()
	print("Database schema ensured and demo users seeded.")


if __name__ == "__main__":
	asyncio.run(main())
