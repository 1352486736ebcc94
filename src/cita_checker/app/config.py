"""
Configuration settings for the Cita Previa checker
"""
import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationMissing
from .schemas import PersonalDetails


# Environment variable that backs each personal detail
PERSONAL_DETAIL_ENV = {
    "identifier": "PERSONAL_DETAILS_NIE",
    "name": "PERSONAL_DETAILS_NAME",
    "email": "PERSONAL_DETAILS_EMAIL",
    "phone": "PERSONAL_DETAILS_PHONE_NUMBER",
}


def _merge(base: dict, overrides: dict) -> dict:
    """Recursively lay ``overrides`` over ``base``"""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Pacing(BaseModel):
    """Keystroke delays and pauses (milliseconds) used while filling the forms"""

    # Identity form
    identity_keystroke_ms: int = 100
    identity_pause_ms: int = 1500
    identity_accept_pause_ms: int = 3000

    # Complementary information form
    complementary_pause_ms: int = 1200
    phone_keystroke_ms: int = 65
    phone_pause_ms: int = 400
    email_keystroke_ms: int = 80
    email_pause_ms: int = 570
    email_confirm_keystroke_ms: int = 70
    complementary_next_pause_ms: int = 813

    # Slot selection
    slot_pause_ms: int = 1100
    slot_next_pause_ms: int = 597
    confirm_dialog_pause_ms: int = 317


class SiteProfile(BaseModel):
    """Selectors, literal values and timings for the ICP cita previa site.

    Everything here is tied to the site's current markup. Bump ``version``
    whenever the profile is adapted to a markup change.
    """

    version: str = "icpplus-2024.1"
    entry_url: str = "https://sede.administracionespublicas.gob.es/pagina/index/directorio/icpplus"
    settle_state: str = Field(default="networkidle", description="Load state a navigation must reach")

    # Entry page
    access_button: str = 'input[type="submit"][value="Acceder al Procedimiento"]'

    # Province
    province_select: str = "#form"
    province_value: str = "/icpplus/citar?p=46&locale=es"
    accept_button: str = 'input[type="button"][value="Aceptar"]'

    # Office and procedure
    office_form: str = "#portadaForm"
    office_select: str = "#sede"
    office_id: str = "8"
    office_reload_timeout_ms: int = 2000
    procedure_select: str = "#tramiteGrupo\\[0\\]"
    procedure_group_id: str = "4036"

    # Availability notice
    notice: str = ".mf-note"
    unavailable_phrases: List[str] = Field(
        default_factory=lambda: [
            "En este momento no hay citas disponibles en esta sede.",
            "no appointments currently available at this office",
        ]
    )

    # Information page
    enter_button: str = 'input[type="button"][value="Entrar"]'

    # Identity
    identifier_input: str = "#txtIdCitado"
    name_input: str = "#txtDesCitado"

    # Appointment request
    request_appointment_button: str = 'input[type="button"][value="Solicitar Cita"]'

    # Complementary information
    phone_input: str = "#txtTelefonoCitado"
    email_input: str = "#emailUNO"
    email_confirm_input: str = "#emailDOS"
    next_button: str = "#btnSiguiente"

    # Slot selection
    slot_radio: str = 'input[name="rdbCita"]'
    first_slot: str = "#cita1"
    confirm_dialog: str = ".jconfirm-box"
    confirm_dialog_buttons: str = ".jconfirm-box button"
    confirm_labels: List[str] = Field(default_factory=lambda: ["si", "sí", "yes"])

    # Diagnostic dump
    diagnostic_elements: str = "input, button, select, textarea, a"

    pacing: Pacing = Field(default_factory=Pacing)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Personal details (read when the steps that need them run)
    personal_details_nie: Optional[str] = Field(default=None, description="NIE / identifier of the applicant")
    personal_details_name: Optional[str] = Field(default=None, description="Full name of the applicant")
    personal_details_email: Optional[str] = Field(default=None, description="Applicant email address")
    personal_details_phone_number: Optional[str] = Field(default=None, description="Applicant phone number")

    # Resend (transactional email)
    resend_key: Optional[str] = Field(default=None, description="Resend API key")
    resend_receiver_email: Optional[str] = Field(default=None, description="Operator address receiving notifications")
    resend_sender_email: Optional[str] = Field(default="onboarding@resend.dev", description="Sender address")
    resend_api_url: str = Field(default="https://api.resend.com/emails", description="Resend send-email endpoint")

    # Browser
    browser_executable_path: Optional[str] = Field(default=None, description="Chromium executable, bundled if unset")
    headless: bool = Field(default=False, description="Run browser in headless mode")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (X11; Linux x86_64)"
            " AppleWebKit/537.36 (KHTML, like Gecko) Chrome/64.0.3282.39 Safari/537.36"
        ),
        description="User agent reported by the page",
    )
    viewport_width: int = Field(default=1920, description="Viewport width")
    viewport_height: int = Field(default=1080, description="Viewport height")
    browser_languages: List[str] = Field(default_factory=lambda: ["en-US", "en"], description="navigator.languages")
    default_timeout_ms: Optional[int] = Field(default=None, description="Page default timeout, Playwright's if unset")
    close_delay_ms: int = Field(default=3000, description="Delay before closing the browser after a full run")

    # Run behaviour
    diagnostic_dump_enabled: bool = Field(default=True, description="Send the final page dump after a full run")
    schedule_enabled: bool = Field(default=False, description="Repeat the checks on fixed intervals")
    start_jitter_minutes: int = Field(default=0, description="Random start delay of 1..N minutes, 0 disables")

    # Site
    site: SiteProfile = Field(default_factory=SiteProfile)
    site_profile_file: Optional[Path] = Field(default=None, description="JSON site profile, SITE__ values override it")

    # Logging
    log_level: str = Field(default="INFO", description="Console log level")
    base_dir: Path = Field(default=Path(__file__).parent.parent.parent.parent, description="Base directory")
    log_dir: Optional[Path] = Field(default=None, description="Log directory, data/logs if unset")

    @model_validator(mode="after")
    def _load_site_profile_file(self):
        # File first, then any SITE__ values given explicitly on top
        if self.site_profile_file:
            profile = json.loads(self.site_profile_file.read_text(encoding="utf-8"))
            overrides = self.site.model_dump(exclude_unset=True)
            self.site = SiteProfile.model_validate(_merge(profile, overrides))
        return self

    @property
    def logs_dir(self) -> Path:
        return self.log_dir or self.base_dir / "data" / "logs"

    def personal_details(self, *required: str) -> PersonalDetails:
        """Return the applicant details, failing if any of ``required`` is unset"""
        details = PersonalDetails(
            identifier=self.personal_details_nie,
            name=self.personal_details_name,
            email=self.personal_details_email,
            phone=self.personal_details_phone_number,
        )
        missing = [PERSONAL_DETAIL_ENV[field] for field in required if not getattr(details, field)]
        if missing:
            raise ConfigurationMissing(missing)
        return details

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
