from __future__ import annotations

import hashlib

import bcrypt

from todu.domain.accounts.ports import PasswordHasher


def _prehash(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes
    return hashlib.sha256(password.encode("utf-8")).digest()


class BcryptPasswordHasher(PasswordHasher):
    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
        except ValueError:
            return False
