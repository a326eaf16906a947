"""Identity provider double with a fixed set of accounts."""

from ewaiter.services.errors import IdentityProviderUnavailable, InvalidCredentials
from ewaiter.services.identity import Principal


class FakeIdentityProvider:
    def __init__(self, accounts: dict[str, tuple[str, str]], unavailable: bool = False) -> None:
        # email -> (principal id, password)
        self.accounts = {email.lower(): account for email, account in accounts.items()}
        self.unavailable = unavailable
        self.sign_in_calls = 0
        self.sign_out_calls = 0
        self._principal: Principal | None = None

    async def sign_in(self, email: str, password: str) -> Principal:
        self.sign_in_calls += 1
        if self.unavailable:
            raise IdentityProviderUnavailable("Identity provider unavailable. Please try again.")
        account = self.accounts.get(email.lower())
        if account is None or account[1] != password:
            raise InvalidCredentials("The email or password is incorrect.")
        self._principal = Principal(id=account[0], email=email)
        return self._principal

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        self._principal = None

    def current_principal_id(self) -> str | None:
        return self._principal.id if self._principal else None
