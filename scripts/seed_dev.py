"""Seed a local database with a demo user, labels and notes.

Usage: python scripts/seed_dev.py [--email a@a.com] [--password test123] [--notes 50]
"""

from __future__ import annotations

import argparse
import asyncio
import random

from sqlmodel import select

from notes_backend.db import dispose_engine_cache, init_db, session_scope
from notes_backend.models import User
from notes_backend.repositories import labels_repo, notes_repo
from notes_backend.security import hash_password

_WORDS = (
    "alpha", "bread", "cactus", "delta", "ember", "fjord", "garden", "harbor",
    "island", "jasmine", "kettle", "lantern", "meadow", "nectar", "orbit", "pepper",
    "quartz", "river", "saffron", "timber", "umbra", "velvet", "willow", "yarrow",
)


def _words(rng: random.Random, low: int, high: int) -> str:
    return " ".join(rng.choice(_WORDS) for _ in range(rng.randint(low, high)))


async def seed(*, email: str, password: str, note_count: int, rng: random.Random) -> int:
    await init_db()

    async with session_scope() as session:
        existing = (await session.exec(select(User).where(User.email == email))).first()
        if existing is not None:
            raise SystemExit(f"user already exists: {email}")

        user = User(email=email, password_hash=hash_password(password))
        session.add(user)
        await session.commit()
        await session.refresh(user)
        user_id = int(user.id or 0)

        names = [_words(rng, 1, 3)[:50] for _ in range(note_count)]
        await labels_repo.create_labels_skip_duplicates(session, user_id=user_id, names=names)
        labels = await labels_repo.find_labels_by_names(session, user_id=user_id, names=names)
        label_ids = [int(label.id) for label in labels if label.id is not None]

        for index in range(note_count):
            picked = rng.sample(label_ids, k=min(len(label_ids), rng.randint(0, 3)))
            await notes_repo.create_note(
                session,
                user_id=user_id,
                # Every fourth note has no title.
                title=None if index % 4 == 0 else _words(rng, 1, 5),
                content=_words(rng, 5, 40),
                pinned=False,
                order=index + 1,
                label_ids=picked,
            )
        await session.commit()
        return user_id


async def _main(args: argparse.Namespace) -> None:
    try:
        user_id = await seed(
            email=args.email,
            password=args.password,
            note_count=args.notes,
            rng=random.Random(args.seed),
        )
        print(f"seeded user_id={user_id} email={args.email}")
    finally:
        await dispose_engine_cache()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a development database.")
    parser.add_argument("--email", default="a@a.com")
    parser.add_argument("--password", default="test123")
    parser.add_argument("--notes", type=int, default=50)
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    asyncio.run(_main(parser.parse_args()))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
