"""Signup store adapters - abstract over the persistence backend."""

from signup_intake.adapters.store.base import AbstractSignupStore
from signup_intake.adapters.store.factory import create_signup_store
from signup_intake.adapters.store.in_memory import InMemorySignupStore
from signup_intake.adapters.store.postgres import PostgresSignupStore

__all__ = [
    "AbstractSignupStore",
    "InMemorySignupStore",
    "PostgresSignupStore",
    "create_signup_store",
]
