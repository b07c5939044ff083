"""User verification token registry.

A verification token is a soulbound, expiring credential: every account holds
at most one, every token id belongs to at most one account, and no operation
moves a token between accounts except the registry's own ``reissue_token``.

Token id lifecycle::

    NonExistent --issue--> Active --(time passes)--> Expired
                            ^  |                        |
                            |  +-------revoke-----------+--> NonExistent
                            +---------extend------------+

An account is *verified* while it holds a token, whether or not that token
has expired. ``is_token_expired`` is the validity check callers must
consult in addition to ``has_token``.

Two maps are kept as explicit inverses of each other (``_token_owner`` and
``_holder_token``) and are always written together inside one transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from dappy.auth.access import AccessControl
from dappy.auth.models import ZERO_ACCOUNT, Account, is_zero_account, normalize_account
from dappy.errors import (
    AlreadyInitializedError,
    AlreadyVerifiedError,
    InvalidAccountError,
    NoTokenError,
    NonTransferableError,
    NotInitializedError,
    TokenExistsError,
    TokenNotFoundError,
)
from dappy.ledger.context import LedgerContext
from dappy.verification.models import TokenMetadata, TokenRecord

logger = logging.getLogger(__name__)

MAX_TOKEN_ID = 2**256 - 1


def _valid_token_id(token_id: int) -> int:
    if isinstance(token_id, bool) or not isinstance(token_id, int):
        raise ValueError(f"token id must be an integer, got {token_id!r}")
    if not 0 <= token_id <= MAX_TOKEN_ID:
        raise ValueError(f"token id out of range: {token_id}")
    return token_id


def _recipient(account: Account) -> Account:
    if is_zero_account(account):
        raise InvalidAccountError("Cannot issue a token to the zero account")
    return normalize_account(account)


class NonTransferable:
    """Token-style transfer surface with every entry point disabled.

    The methods exist so the registry presents the familiar token interface;
    each one rejects every call, whatever the arguments.
    """

    def transfer_from(self, caller: Account, from_account: Account, to_account: Account, token_id: int) -> None:
        raise NonTransferableError()

    def safe_transfer_from(self, caller: Account, from_account: Account, to_account: Account, token_id: int) -> None:
        raise NonTransferableError()

    def safe_transfer_from_with_data(
        self, caller: Account, from_account: Account, to_account: Account, token_id: int, data: bytes
    ) -> None:
        raise NonTransferableError()

    def approve(self, caller: Account, to_account: Account, token_id: int) -> None:
        raise NonTransferableError()

    def set_approval_for_all(self, caller: Account, operator: Account, approved: bool) -> None:
        raise NonTransferableError()

    def get_approved(self, token_id: int) -> Account:
        return ZERO_ACCOUNT

    def is_approved_for_all(self, owner: Account, operator: Account) -> bool:
        return False


class UserVerification(NonTransferable):
    """Registry of soulbound, expiring user verification tokens."""

    registry_name = "verification"

    def __init__(self, context: Optional[LedgerContext] = None) -> None:
        self.context = context or LedgerContext()
        self.access: Optional[AccessControl] = None
        self._metadata: Optional[TokenMetadata] = None
        self._token_owner: dict[int, Account] = {}
        self._holder_token: dict[Account, int] = {}
        self._expiry: dict[int, int] = {}
        self._issued_at: dict[int, int] = {}
        self._next_token_id = 1

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self, owner: Account, name: str, symbol: str, expiration_time: int) -> None:
        """Set owner, token name/symbol and validity duration. Runs once.

        Argument validation is the caller's job (see ``dappy.config``); this
        only guards against a second initialization.
        """
        with self.context.transaction():
            if self._metadata is not None:
                raise AlreadyInitializedError()
            self.access = AccessControl(owner, self.context, self.registry_name)
            self._metadata = TokenMetadata(name=name, symbol=symbol, expiration_time=int(expiration_time))
            self.context.emit("Initialized", self.registry_name, owner=self.access.owner, version=1)
        logger.info(
            "verification registry initialized: %s (%s), tokens valid for %ss",
            name,
            symbol,
            expiration_time,
        )

    @property
    def initialized(self) -> bool:
        return self._metadata is not None

    def _require_metadata(self) -> TokenMetadata:
        if self._metadata is None:
            raise NotInitializedError()
        return self._metadata

    def _require_access(self) -> AccessControl:
        if self.access is None:
            raise NotInitializedError()
        return self.access

    @property
    def name(self) -> str:
        return self._require_metadata().name

    @property
    def symbol(self) -> str:
        return self._require_metadata().symbol

    @property
    def expiration_time(self) -> int:
        return self._require_metadata().expiration_time

    # ------------------------------------------------------------------
    # Administration (owner only)
    # ------------------------------------------------------------------

    @property
    def owner(self) -> Account:
        return self._require_access().owner

    @property
    def pending_owner(self) -> Optional[Account]:
        return self._require_access().pending_owner

    def transfer_ownership(self, caller: Account, new_owner: Account) -> None:
        self._require_access().transfer_ownership(caller, new_owner)

    def begin_ownership_transfer(self, caller: Account, new_owner: Account) -> None:
        self._require_access().begin_ownership_transfer(caller, new_owner)

    def accept_ownership(self, caller: Account) -> None:
        self._require_access().accept_ownership(caller)

    def set_managers(self, caller: Account, accounts: Iterable[Account], enabled: bool) -> list[Account]:
        return self._require_access().set_managers(caller, accounts, enabled)

    def is_manager(self, account: Account) -> bool:
        return self._require_access().is_manager(account)

    def managers(self) -> list[Account]:
        return self._require_access().managers()

    # ------------------------------------------------------------------
    # Token lifecycle (owner or manager)
    # ------------------------------------------------------------------

    def issue_token(self, caller: Account, account: Account, token_id: Optional[int] = None) -> int:
        """Issue a token to ``account`` and return its id.

        When ``token_id`` is omitted the next free id from the internal
        counter is used. Fails with ``AlreadyVerifiedError`` if the account
        already holds a token (checked first), then with ``TokenExistsError``
        if the id is taken by any account.
        """
        with self.context.transaction():
            self._require_access().require_owner_or_manager(caller)
            account = _recipient(account)
            if token_id is not None:
                token_id = _valid_token_id(token_id)
            if account in self._holder_token:
                raise AlreadyVerifiedError()
            if token_id is None:
                token_id = self._allocate_token_id()
            elif token_id in self._token_owner:
                raise TokenExistsError()

            now = self.context.now()
            expires_at = now + self.expiration_time
            self._token_owner[token_id] = account
            self._holder_token[account] = token_id
            self._issued_at[token_id] = now
            self._expiry[token_id] = expires_at
            self.context.emit(
                "TokenIssued",
                self.registry_name,
                account=account,
                token_id=token_id,
                expires_at=expires_at,
            )
        logger.info("issued token %s to %s (expires %s)", token_id, account, expires_at)
        return token_id

    def revoke_token(self, caller: Account, token_id: int) -> None:
        """Destroy a token, expired or not."""
        with self.context.transaction():
            self._require_access().require_owner_or_manager(caller)
            token_id = _valid_token_id(token_id)
            holder = self._token_owner.get(token_id)
            if holder is None:
                raise TokenNotFoundError()

            del self._token_owner[token_id]
            del self._holder_token[holder]
            del self._issued_at[token_id]
            del self._expiry[token_id]
            self.context.emit("TokenRevoked", self.registry_name, account=holder, token_id=token_id)
        logger.info("revoked token %s from %s", token_id, holder)

    def reissue_token(self, caller: Account, from_account: Account, to_account: Account) -> bool:
        """Move ``from_account``'s token to ``to_account``.

        If ``to_account`` already holds a token nothing happens and False is
        returned. The moved token keeps its id and its current expiry.
        """
        with self.context.transaction():
            self._require_access().require_owner_or_manager(caller)
            from_account = normalize_account(from_account)
            to_account = _recipient(to_account)
            if to_account in self._holder_token:
                skipped = True
            else:
                skipped = False
                token_id = self._holder_token.get(from_account)
                if token_id is None:
                    raise NoTokenError()

                del self._holder_token[from_account]
                self._holder_token[to_account] = token_id
                self._token_owner[token_id] = to_account
                self.context.emit(
                    "TokenReissued",
                    self.registry_name,
                    from_account=from_account,
                    to_account=to_account,
                    token_id=token_id,
                )
        if skipped:
            logger.warning("reissue skipped: %s already holds a token", to_account)
            return False
        logger.info("reissued token %s from %s to %s", token_id, from_account, to_account)
        return True

    def extend_token_expiry(self, caller: Account, token_id: int) -> int:
        """Restart the token's validity window from now. Returns the new expiry."""
        with self.context.transaction():
            self._require_access().require_owner_or_manager(caller)
            token_id = _valid_token_id(token_id)
            if token_id not in self._token_owner:
                raise TokenNotFoundError()

            expires_at = self.context.now() + self.expiration_time
            self._expiry[token_id] = expires_at
            self.context.emit(
                "TokenExpiryExtended",
                self.registry_name,
                token_id=token_id,
                expires_at=expires_at,
            )
        logger.info("extended token %s until %s", token_id, expires_at)
        return expires_at

    def _allocate_token_id(self) -> int:
        while self._next_token_id in self._token_owner:
            self._next_token_id += 1
        token_id = self._next_token_id
        self._next_token_id += 1
        return token_id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def token_exists(self, token_id: int) -> bool:
        return _valid_token_id(token_id) in self._token_owner

    def has_token(self, account: Account) -> bool:
        return normalize_account(account) in self._holder_token

    def balance_of(self, account: Account) -> int:
        return 1 if self.has_token(account) else 0

    def get_token_id(self, account: Account) -> int:
        token_id = self._holder_token.get(normalize_account(account))
        if token_id is None:
            raise NoTokenError()
        return token_id

    def owner_of(self, token_id: int) -> Account:
        holder = self._token_owner.get(_valid_token_id(token_id))
        if holder is None:
            raise TokenNotFoundError()
        return holder

    def token_expiry(self, token_id: int) -> int:
        return self.token_record(token_id).expires_at

    def token_issued_at(self, token_id: int) -> int:
        return self.token_record(token_id).issued_at

    def is_token_expired(self, token_id: int) -> bool:
        return self.token_record(token_id).is_expired(self.context.now())

    def time_before_expiration(self, token_id: int) -> int:
        return self.token_record(token_id).time_left(self.context.now())

    def token_record(self, token_id: int) -> TokenRecord:
        holder = self.owner_of(token_id)
        return TokenRecord(
            token_id=token_id,
            holder=holder,
            issued_at=self._issued_at[token_id],
            expires_at=self._expiry[token_id],
        )

    def tokens(self) -> list[TokenRecord]:
        return [self.token_record(t) for t in sorted(self._token_owner)]

    def total_supply(self) -> int:
        return len(self._token_owner)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        meta = self._metadata
        return {
            "registry": self.registry_name,
            "metadata": None
            if meta is None
            else {"name": meta.name, "symbol": meta.symbol, "expiration_time": meta.expiration_time},
            "access": None if self.access is None else self.access.snapshot(),
            "next_token_id": self._next_token_id,
            "tokens": [
                {
                    "token_id": r.token_id,
                    "holder": r.holder,
                    "issued_at": r.issued_at,
                    "expires_at": r.expires_at,
                }
                for r in self.tokens()
            ],
        }

    @classmethod
    def restore(cls, data: dict, context: Optional[LedgerContext] = None) -> "UserVerification":
        registry = cls(context)
        if data.get("metadata"):
            registry._metadata = TokenMetadata(**data["metadata"])
        if data.get("access"):
            registry.access = AccessControl.restore(data["access"], registry.context, cls.registry_name)
        registry._next_token_id = data.get("next_token_id", 1)
        for entry in data.get("tokens", []):
            token_id = _valid_token_id(entry["token_id"])
            holder = normalize_account(entry["holder"])
            if token_id in registry._token_owner or holder in registry._holder_token:
                raise ValueError(f"corrupt snapshot: duplicate token {token_id} or holder {holder}")
            registry._token_owner[token_id] = holder
            registry._holder_token[holder] = token_id
            registry._issued_at[token_id] = entry["issued_at"]
            registry._expiry[token_id] = entry["expires_at"]
        return registry
