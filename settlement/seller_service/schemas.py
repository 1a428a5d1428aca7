from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

PayoutMethod = Literal["bank_transfer", "alias_transfer"]

PAYOUT_METHOD_LABELS = {
    "bank_transfer": "Bank Transfer",
    "alias_transfer": "UPI Transfer",
}


def mask_account_number(account_number: str) -> str:
    """Only the last four digits ever leave the seller's own view."""
    tail = account_number[-4:] if account_number else ""
    return f"XXXX{tail}"


class StoreCreate(BaseModel):
    seller_id: str
    name: str = Field(min_length=1)
    business_email: Optional[str] = None


class StoreResponse(BaseModel):
    id: str
    seller_id: str
    name: str
    business_email: Optional[str]

    class Config:
        from_attributes = True


class BankDetailUpsert(BaseModel):
    account_holder_name: str = Field(min_length=1)
    bank_name: str = Field(min_length=1)
    account_number: str = Field(min_length=6, max_length=20)
    ifsc_code: str = Field(min_length=11, max_length=11)
    alias_id: Optional[str] = None
    payout_method: PayoutMethod = "bank_transfer"

    @field_validator("account_number")
    @classmethod
    def digits_only(cls, value: str) -> str:
        if not value.isdigit():
            raise ValueError("account_number must contain digits only")
        return value

    @field_validator("ifsc_code")
    @classmethod
    def normalise_ifsc(cls, value: str) -> str:
        value = value.upper()
        if not (value[:4].isalpha() and value[4] == "0" and value[5:].isalnum()):
            raise ValueError("ifsc_code must look like ABCD0123456")
        return value


class BankDetailView(BaseModel):
    """Read-only, masked view used by sellers' dashboards and the payout admin."""
    seller_id: str
    account_holder_name: str
    bank_name: str
    account_number_masked: str
    ifsc_code: str
    alias_id: Optional[str] = None
    payout_method: PayoutMethod

    @classmethod
    def from_model(cls, detail) -> "BankDetailView":
        return cls(
            seller_id=detail.seller_id,
            account_holder_name=detail.account_holder_name,
            bank_name=detail.bank_name,
            account_number_masked=mask_account_number(detail.account_number),
            ifsc_code=detail.ifsc_code,
            alias_id=detail.alias_id,
            payout_method=detail.payout_method,
        )
