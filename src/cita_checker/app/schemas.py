"""
Pydantic schemas for notification events and run results
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ============== Personal Details ==============

class PersonalDetails(BaseModel):
    """Applicant details typed into the booking forms"""
    model_config = ConfigDict(frozen=True)

    identifier: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


# ============== Notification Events ==============

class Success(BaseModel):
    """An appointment may be available"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    message: str


class Failure(BaseModel):
    """A step failed; carries the page screenshot when one could be taken"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    message: str
    screenshot: Optional[bytes] = Field(default=None, repr=False)


class Maintenance(BaseModel):
    """The site reports no appointments; the flow itself is healthy"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["maintenance"] = "maintenance"
    message: str


NotificationEvent = Annotated[Union[Success, Failure, Maintenance], Field(discriminator="kind")]


# ============== Diagnostic Dump ==============

class FormElement(BaseModel):
    """One interactive element of the final page"""
    model_config = ConfigDict(populate_by_name=True)

    tag_name: str = Field(alias="tagName")
    id: str = ""
    css_class: str = Field(default="", alias="class")
    name: Optional[str] = None
    value: Optional[str] = None
    href: Optional[str] = None
    inner_text: str = Field(default="", alias="innerText")


# ============== Check Result ==============

class CheckResult(BaseModel):
    """Everything one run of the checker produced"""
    events: List[NotificationEvent] = Field(default_factory=list)
    completed: bool = False
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def of_kind(self, kind: str) -> list:
        return [event for event in self.events if event.kind == kind]
