"""
Signer resolution for deployment transactions.
"""

from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from jiblycoin_deploy.core.exceptions import ConfigurationError


class Signer:
    """
    Account that signs and pays for deployment transactions.

    Either a local key (transactions are signed here and sent raw) or an
    account unlocked on the node (transactions are sent with eth_sendTransaction).
    """

    def __init__(self, address: str, account: Optional[LocalAccount] = None):
        self.address = Web3.to_checksum_address(address)
        self.account = account

    @property
    def is_local(self) -> bool:
        """True when the private key is held by this process."""
        return self.account is not None

    def sign_transaction(self, transaction: dict) -> bytes:
        """
        Sign a transaction with the local key.

        Returns:
            Raw signed transaction bytes
        """
        if not self.account:
            raise ConfigurationError("Signer has no local key; node must sign")
        signed = self.account.sign_transaction(transaction)
        return signed.raw_transaction

    def __repr__(self) -> str:
        kind = "local" if self.is_local else "node"
        return f"Signer({self.address}, {kind})"


def signer_from_private_key(private_key: str) -> Signer:
    """
    Build a signer from a hex private key (0x prefix optional).

    Raises:
        ConfigurationError: If the key is malformed
    """
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    try:
        account = Account.from_key(private_key)
    except (ValueError, TypeError) as e:
        raise ConfigurationError("PRIVATE_KEY is not a valid private key") from e
    return Signer(account.address, account)


async def resolve_signer(w3, private_key: Optional[str] = None) -> Signer:
    """
    Resolve the deployment signer.

    Uses the configured key when present, otherwise the node's first unlocked
    account (local development nodes only).

    Args:
        w3: Connected AsyncWeb3 instance
        private_key: Optional hex private key

    Returns:
        Signer for all transactions of this run
    """
    if private_key:
        return signer_from_private_key(private_key)

    accounts = await w3.eth.accounts
    if not accounts:
        raise ConfigurationError(
            "No PRIVATE_KEY configured and the node exposes no unlocked accounts"
        )
    return Signer(accounts[0])
