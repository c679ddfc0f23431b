from skillpath.repositories.user import UserRepository

__all__ = ["UserRepository"]
