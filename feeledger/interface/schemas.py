"""Mini README: Request bodies accepted by the JSON API.

Fields use camelCase aliases on the wire and snake_case in Python; both
spellings are accepted. Most fields are optional here because the services
own the validation rules and report every failing field at once.
``payload`` drops fields the client never sent so partial updates stay
partial.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, validator

Amount = Optional[Union[float, str]]


class ApiModel(BaseModel):
    class Config:
        populate_by_name = True
        extra = "ignore"

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# Auth -----------------------------------------------------------------


class RegisterRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(ApiModel):
    email: Optional[str] = None


class VerifyOtpRequest(ApiModel):
    otp: Optional[str] = None
    email: Optional[str] = None

    @validator("otp", pre=True)
    def _otp_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class ResetPasswordRequest(ApiModel):
    new_password: Optional[str] = Field(None, alias="newPassword")
    email: Optional[str] = None


class ChangePasswordRequest(ApiModel):
    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")


class VerifyPasswordRequest(ApiModel):
    password: Optional[str] = None


class UpdateProfileRequest(ApiModel):
    name: Optional[str] = None


class ResetDatabaseRequest(ApiModel):
    password: Optional[str] = None
    confirmation_phrase: Optional[str] = Field(None, alias="confirmationPhrase")
    challenge_token: Optional[str] = Field(None, alias="challengeToken")


# Categories -----------------------------------------------------------


class CategoryRequest(ApiModel):
    name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")


# Students and fines ---------------------------------------------------


class StudentRequest(ApiModel):
    prn: Optional[str] = None
    name: Optional[str] = None
    department: Optional[str] = None
    academic_year: Optional[str] = Field(None, alias="academicYear")
    semester: Optional[str] = None
    year: Optional[str] = None
    division: Optional[str] = None
    roll_no: Optional[str] = Field(None, alias="rollNo")
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")

    @validator("prn", "semester", "year", "roll_no", "phone", pre=True)
    def _numbers_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class FineRequest(ApiModel):
    amount: Amount = None
    reason: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None
    is_paid: Optional[bool] = Field(None, alias="isPaid")
    paid_date: Optional[str] = Field(None, alias="paidDate")
    receipt_number: Optional[str] = Field(None, alias="receiptNumber")


# Expenditures ---------------------------------------------------------


class ExpenditureRequest(ApiModel):
    amount: Amount = None
    description: Optional[str] = None
    category: Optional[str] = None
    sender_name: Optional[str] = Field(None, alias="senderName")
    receiver_name: Optional[str] = Field(None, alias="receiverName")
    department: Optional[str] = None
    date: Optional[str] = None
    receipt_number: Optional[str] = Field(None, alias="receiptNumber")
    notes: Optional[str] = None


# Reports --------------------------------------------------------------


class BulkDeleteItem(ApiModel):
    student_prn: Optional[str] = Field(None, alias="studentPRN")
    fine_id: Optional[Union[int, str]] = Field(None, alias="fineId")


class BulkDeleteRequest(ApiModel):
    items: List[BulkDeleteItem] = Field(default_factory=list, validate_default=True)

    @validator("items")
    def _items_required(cls, value: List[BulkDeleteItem]) -> List[BulkDeleteItem]:
        if not value:
            raise ValueError("Please provide at least one item to delete")
        return value
