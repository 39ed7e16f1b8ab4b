"""
Signing identity generation and derivation.

Mnemonics are generated from OS entropy (BIP-39) and derived along the
standard Ethereum BIP-44 path ``m/44'/60'/0'/0/{index}``. The phrase lives in
a MnemonicSecret: a bytearray that is zeroed when the owning scope exits,
on every exit path, and that refuses to be copied or pickled.
"""
from __future__ import annotations

import logging
import secrets
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

from eth_account import Account
from eth_account.hdaccount import Mnemonic
from eth_account.signers.local import LocalAccount
from eth_account.types import Language
from eth_utils import ValidationError as EthValidationError

from .address import Address
from .exceptions import RelayValidationError, SecretReleasedError, WalletError

logger = logging.getLogger(__name__)

VALID_WORD_COUNTS = (12, 15, 18, 21, 24)
DEFAULT_WORD_COUNT = 24
DERIVATION_PATH_TEMPLATE = "m/44'/60'/0'/0/{index}"
MAX_ACCOUNT_INDEX = 2**31 - 1

Account.enable_unaudited_hdwallet_features()


class MnemonicSecret:
    """
    A mnemonic phrase held in a wipe-on-release buffer.

    Use as a context manager; the buffer is zeroed when the block exits,
    whether it returns normally or raises. ``reveal()`` hands out a
    transient ``str`` for derivation only.
    """

    __slots__ = ("_buffer", "_word_count")

    def __init__(self, phrase: Union[str, bytes, bytearray]):
        if isinstance(phrase, str):
            phrase = phrase.encode("utf-8")
        self._buffer = bytearray(phrase)
        self._word_count = self._buffer.count(b" ") + 1 if self._buffer else 0

    @property
    def released(self) -> bool:
        return self._buffer is None

    @property
    def word_count(self) -> int:
        return self._word_count

    def reveal(self) -> str:
        if self._buffer is None:
            raise SecretReleasedError("Mnemonic secret has already been wiped")
        return self._buffer.decode("utf-8")

    def wipe(self) -> None:
        """Zero the buffer in place and drop it. Safe to call repeatedly."""
        buffer = self._buffer
        if buffer is None:
            return
        for i in range(len(buffer)):
            buffer[i] = 0
        self._buffer = None

    def __enter__(self) -> "MnemonicSecret":
        if self._buffer is None:
            raise SecretReleasedError("Mnemonic secret has already been wiped")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        if getattr(self, "_buffer", None) is not None:
            self.wipe()

    def __copy__(self):
        raise TypeError("MnemonicSecret cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("MnemonicSecret cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError("MnemonicSecret cannot be pickled")

    def __repr__(self) -> str:
        state = "released" if self._buffer is None else f"{self._word_count} words"
        return f"MnemonicSecret(<{state}>)"

    __str__ = __repr__


class SigningIdentity:
    """A derived account able to sign transactions.

    Equality is by address and derivation path; key material is never
    part of repr or equality.
    """

    __slots__ = ("_account", "_address", "_path")

    def __init__(self, account: LocalAccount, derivation_path: str):
        self._account = account
        self._address = Address.from_string(account.address)
        self._path = derivation_path

    @property
    def address(self) -> Address:
        return self._address

    @property
    def derivation_path(self) -> str:
        return self._path

    def sign_transaction(self, tx: Dict[str, Any]) -> bytes:
        """Sign ``tx`` and return the raw encoded transaction."""
        signed = self._account.sign_transaction(tx)
        return bytes(signed.raw_transaction)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SigningIdentity):
            return NotImplemented
        return self._address == other._address and self._path == other._path

    def __hash__(self) -> int:
        return hash((self._address, self._path))

    def __repr__(self) -> str:
        return f"SigningIdentity({self._address.checksum}, {self._path})"


class WalletFactory:
    """Mints mnemonics from OS entropy and derives signing identities."""

    def __init__(self, entropy_source: Callable[[int], bytes] = secrets.token_bytes):
        self._entropy_source = entropy_source
        self._mnemonic = Mnemonic(Language.ENGLISH)

    @staticmethod
    def derivation_path(index: int) -> str:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= MAX_ACCOUNT_INDEX:
            raise RelayValidationError(
                f"Account index must be in 0..{MAX_ACCOUNT_INDEX}, got {index!r}",
                field="index",
            )
        return DERIVATION_PATH_TEMPLATE.format(index=index)

    def generate(
        self,
        word_count: int = DEFAULT_WORD_COUNT,
        password: Optional[str] = None,
    ) -> Tuple[MnemonicSecret, SigningIdentity]:
        """
        Generate a new mnemonic and derive the identity at index 0.

        Args:
            word_count: 12, 15, 18, 21 or 24 (24 words = 256-bit entropy)
            password: Optional BIP-39 passphrase

        Returns:
            (secret, identity). The caller owns the secret and should hold it
            in a ``with`` block so it is wiped on release.
        """
        if word_count not in VALID_WORD_COUNTS:
            raise RelayValidationError(
                f"Word count must be one of {VALID_WORD_COUNTS}, got {word_count!r}",
                field="word_count",
            )

        entropy = bytearray(self._entropy_source(word_count * 4 // 3))
        try:
            secret = MnemonicSecret(self._mnemonic.to_mnemonic(bytes(entropy)))
        finally:
            for i in range(len(entropy)):
                entropy[i] = 0

        try:
            identity = self.derive(secret, password=password, index=0)
        except BaseException:
            secret.wipe()
            raise

        logger.info(f"Generated {word_count}-word identity {identity.address}")
        return secret, identity

    @contextmanager
    def generated(
        self,
        word_count: int = DEFAULT_WORD_COUNT,
        password: Optional[str] = None,
    ) -> Iterator[Tuple[MnemonicSecret, SigningIdentity]]:
        """Scoped ``generate``: the secret is wiped when the block exits."""
        secret, identity = self.generate(word_count=word_count, password=password)
        with secret:
            yield secret, identity

    def derive(
        self,
        secret: MnemonicSecret,
        password: Optional[str] = None,
        index: int = 0,
    ) -> SigningIdentity:
        """Derive the identity at ``index``. Deterministic; leaves the secret intact."""
        path = self.derivation_path(index)
        try:
            account = Account.from_mnemonic(
                secret.reveal(),
                passphrase=password or "",
                account_path=path,
            )
        except SecretReleasedError:
            raise
        except (ValueError, EthValidationError) as e:
            # eth-account quotes the phrase in its message; keep it out of ours
            raise WalletError(
                "Mnemonic derivation failed: phrase is not a valid BIP-39 mnemonic",
                details={"cause": type(e).__name__, "path": path},
            ) from None
        return SigningIdentity(account, path)


__all__ = [
    "VALID_WORD_COUNTS",
    "DEFAULT_WORD_COUNT",
    "MnemonicSecret",
    "SigningIdentity",
    "WalletFactory",
]
