"""Error types raised by evmguard."""


class EVMGuardError(Exception):
    """Base class for all evmguard errors."""


class InvalidAddress(EVMGuardError):
    """Input is not a 0x-prefixed 40 hex digit address."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid address: {value!r}")


class InvalidAmount(EVMGuardError):
    """Amount string is not a non-negative whole number."""


class UnresolvedIdentifier(EVMGuardError):
    """No resolution stage matched the identifier."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Could not resolve address for: {identifier}")


class UnsupportedNetwork(EVMGuardError):
    pass


class ContractNotDeployed(EVMGuardError):
    """The addressbook has no entry for a contract on the active network."""

    def __init__(self, name: str, chain: str):
        self.name = name
        self.chain = chain
        super().__init__(f"Contract not deployed on {chain}: {name}")


# Pre-flight guard failures. Nothing has been submitted when these are raised.

class WhitelistRejected(EVMGuardError):
    pass


class RecipientNotWhitelisted(WhitelistRejected):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Recipient is not whitelisted: {address}")


class TokenNotWhitelisted(WhitelistRejected):
    def __init__(self, address: str, chain_id: int):
        self.address = address
        self.chain_id = chain_id
        super().__init__(f"Token is not whitelisted on chain {chain_id}: {address}")


class SignerNotWhitelisted(WhitelistRejected):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Wallet is not whitelisted: {address}")


class PoolNotFound(EVMGuardError):
    def __init__(self, token_a: str, token_b: str):
        self.token_a = token_a
        self.token_b = token_b
        super().__init__(f"No Uniswap V2 pool for {token_a} / {token_b}")


class SignerUnavailable(EVMGuardError):
    """A transaction was requested but no private key is configured."""


# Chain interaction failures.

class ContractCallFailed(EVMGuardError):
    """An RPC or contract call failed."""


class ChainTransportError(ContractCallFailed):
    """Network or transport failure. Safe to retry."""


class ContractReverted(ContractCallFailed):
    """The call or transaction reverted. Retrying needs different inputs."""


class TransactionTimeout(ContractCallFailed):
    """The transaction was not mined within the receipt timeout."""


class PersistenceError(EVMGuardError):
    """Whitelist file could not be read, parsed or written."""
