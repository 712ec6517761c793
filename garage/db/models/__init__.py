from garage.db.models.car import Car, CarTag
from garage.db.models.user import User

__all__ = ["User", "Car", "CarTag"]
