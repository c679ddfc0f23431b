from .password_hasher import PasswordHasher
from .token_cache import (
    BlacklistEntry,
    InMemoryTokenCache,
    RefreshTokenRecord,
    SessionRecord,
    TokenCache,
    TokenMetadata,
    token_hash,
)
from .token_codec import DecodedToken, IssuedToken, TokenCodec, TokenPair, TokenType

__all__ = [
    "BlacklistEntry",
    "DecodedToken",
    "InMemoryTokenCache",
    "IssuedToken",
    "PasswordHasher",
    "RefreshTokenRecord",
    "SessionRecord",
    "TokenCache",
    "TokenCodec",
    "TokenMetadata",
    "TokenPair",
    "TokenType",
    "token_hash",
]
