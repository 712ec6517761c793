#!/usr/bin/env python3
"""
Seed script: creates users and cars through the API (no direct DB).
Always creates test@example.com / password123 with the two sample cars,
then optional random users, each with random cars.
Run with the API up:
  python scripts/seed_data.py
  python scripts/seed_data.py --users 20 --cars-per-user 10
"""

import argparse
import random

import httpx

API_BASE = "http://localhost:8000/api"

SAMPLE_USER = {"email": "test@example.com", "password": "password123", "name": "Test User"}

SAMPLE_CARS = [
    {
        "title": "Tesla Model S",
        "description": "Luxury electric sedan with amazing performance",
        "tags": ["electric", "luxury", "sedan"],
        "images": ["https://example.com/tesla-1.jpg", "https://example.com/tesla-2.jpg"],
    },
    {
        "title": "BMW M3",
        "description": "High-performance sports car",
        "tags": ["sports", "luxury", "performance"],
        "images": ["https://example.com/bmw-1.jpg", "https://example.com/bmw-2.jpg"],
    },
]

MAKES = ["Audi A4", "Volvo XC90", "Toyota Corolla", "Honda Civic", "Ford Mustang", "Porsche 911",
         "Mazda MX-5", "Kia EV6", "Hyundai Ioniq 5", "Subaru Outback", "Jeep Wrangler", "Fiat 500"]

DESCRIPTIONS = [
    "Reliable daily driver with a full service history.",
    "Weekend car, garaged and rarely driven in the rain.",
    "Family car with plenty of room for luggage and dogs.",
    "Track-prepared with upgraded brakes and suspension.",
    "Efficient commuter, cheap to run and insure.",
]

TAGS = ["electric", "hybrid", "petrol", "diesel", "luxury", "sedan", "suv", "sports", "classic", "family"]


def random_car(n: int) -> dict:
    return {
        "title": f"{random.choice(MAKES)} #{n}",
        "description": random.choice(DESCRIPTIONS),
        "tags": random.sample(TAGS, k=random.randint(1, 3)),
        "images": [f"https://example.com/car-{n}-{i}.jpg" for i in range(random.randint(1, 4))],
    }


def session_headers(client: httpx.Client, user: dict, errors: list[str]) -> dict | None:
    """Register (or log in when the email exists) and return bearer headers."""
    r = client.post("/auth/register", json=user)
    if r.status_code == 400 and "exists" in r.text:
        r = client.post("/auth/login", json={"email": user["email"], "password": user["password"]})
    if r.status_code not in (200, 201):
        errors.append(f"Session {user['email']}: {r.status_code} {r.text[:80]}")
        return None
    return {"Authorization": f"Bearer {r.json()['token']}"}


def main():
    ap = argparse.ArgumentParser(description="Seed users and cars via API")
    ap.add_argument("--users", type=int, default=0, help="Number of random users to create")
    ap.add_argument("--cars-per-user", type=int, default=5, help="Cars per random user")
    ap.add_argument("--base-url", default=API_BASE, help="API base URL")
    args = ap.parse_args()

    errors: list[str] = []
    created_cars = 0

    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        headers = session_headers(client, SAMPLE_USER, errors)
        if headers:
            for car in SAMPLE_CARS:
                r = client.post("/cars", headers=headers, json=car)
                if r.status_code == 201:
                    created_cars += 1
                else:
                    errors.append(f"Car {car['title']}: {r.status_code}")

        for i in range(args.users):
            user = {"email": f"user{i + 1}@example.com", "password": "password123", "name": f"User {i + 1}"}
            headers = session_headers(client, user, errors)
            if not headers:
                continue
            for _ in range(args.cars_per_user):
                r = client.post("/cars", headers=headers, json=random_car(created_cars + 1))
                if r.status_code == 201:
                    created_cars += 1
                else:
                    errors.append(f"Car for {user['email']}: {r.status_code} {r.text[:80]}")

    print(f"Done. Cars created: {created_cars}")
    print(f"Test user: {SAMPLE_USER['email']} / {SAMPLE_USER['password']}")
    if errors:
        print(f"Errors ({len(errors)}):")
        for e in errors[:15]:
            print("  ", e)
        if len(errors) > 15:
            print("  ... and", len(errors) - 15, "more")


if __name__ == "__main__":
    main()
