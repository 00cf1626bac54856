from __future__ import annotations

from functools import lru_cache

import bcrypt

from traveltrail.config import Settings

TEST_SECRET = "s" * 48
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin1233"


@lru_cache(maxsize=1)
def admin_password_hash() -> str:
    return bcrypt.hashpw(ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode(
        "utf-8"
    )


def make_settings(**overrides) -> Settings:
    values = {
        "admin_secret": TEST_SECRET,
        "admin_username": ADMIN_USERNAME,
        "admin_password_hash": admin_password_hash(),
        "google_script_url": None,
        "gas_secret": None,
        "mongodb_uri": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sample_trip(**overrides) -> dict:
    trip = {
        "name": "Spiti Valley Explorer",
        "desc": "Seven days across the high desert",
        "price": 32000,
        "daysCount": 7,
        "nightsCount": 6,
        "category": "adventure",
        "theme": "mountains",
        "themes": ["mountains", "roadtrip"],
        "inclusions": ["stay", "breakfast"],
        "exclusions": ["flights"],
        "images": ["https://img.example/spiti.jpg"],
        "itineraries": [{"day": 1, "title": "Arrive in Manali"}],
        "availability": True,
        "tripExpert": "Asha",
        "destination": "Spiti",
    }
    trip.update(overrides)
    return trip


def sample_accommodation(**overrides) -> dict:
    accommodation = {
        "name": "Lakeview Cottage",
        "price": 4500,
        "roomType": "Deluxe",
        "bedType": "King",
        "maxOccupancy": 3,
        "size": "320 sq ft",
        "overview": "Quiet cottage on the lake shore",
        "images": ["https://img.example/cottage.jpg"],
        "themes": ["lakeside", "family"],
        "amenities": ["wifi", "breakfast"],
        "destination": "Srinagar",
    }
    accommodation.update(overrides)
    return accommodation
