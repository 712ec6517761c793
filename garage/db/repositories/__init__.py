# Repository pattern: data access behind one interface per model

from garage.db.repositories.car_repository import CarRepository
from garage.db.repositories.user_repository import UserRepository

__all__ = ["UserRepository", "CarRepository"]
