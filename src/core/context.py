"""Authentication context model for dashboard requests."""

from dataclasses import dataclass

from src.database.models.accounts import Account


@dataclass
class AuthenticatedAccountContext:
    """Context containing the account behind a dashboard bearer token."""

    account: Account

    def __post_init__(self):
        """Ensure the account is present."""
        if not self.account:
            raise ValueError("Account is required in authentication context")
