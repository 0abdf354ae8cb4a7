import secrets
from typing import Callable


def random_bytes(size: int) -> Callable[[], bytes]:
    return lambda: secrets.token_bytes(size)
