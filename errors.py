# errors.py
# Discrete failure kinds. `code` is the stable wire value, `status` the HTTP status.

class CreaturesError(Exception):
    code = "error"
    status = 400

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.code)
        self.detail = detail

    def to_dict(self) -> dict:
        out = {"ok": False, "error": self.code}
        if self.detail:
            out["detail"] = self.detail
        return out

class NotAuthorized(CreaturesError):
    code = "not_authorized"
    status = 403

class NotFound(CreaturesError):
    code = "not_found"
    status = 404

class CannotBreed(CreaturesError):
    code = "cannot_breed"
    status = 409

class InvalidParams(CreaturesError):
    code = "invalid_params"
    status = 400

# reserved: the breeding path reports cooldowns as CannotBreed
class CooldownActive(CreaturesError):
    code = "cooldown_active"
    status = 409

class ListingExpired(CreaturesError):
    code = "listing_expired"
    status = 410

# reserved
class PriceMismatch(CreaturesError):
    code = "price_mismatch"
    status = 409

# reserved: duplicate active listings are permitted
class AlreadyListed(CreaturesError):
    code = "already_listed"
    status = 409

class NotListed(CreaturesError):
    code = "not_listed"
    status = 409

class InsufficientBalance(CreaturesError):
    code = "insufficient_balance"
    status = 402

ERROR_KINDS = (
    NotAuthorized, NotFound, CannotBreed, InvalidParams, CooldownActive,
    ListingExpired, PriceMismatch, AlreadyListed, NotListed, InsufficientBalance,
)
