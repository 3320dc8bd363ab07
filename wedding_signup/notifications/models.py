# wedding_signup/notifications/models.py
from pydantic import BaseModel


class WelcomeContext(BaseModel):
    """What the welcome email may tell the owner about their new account. Never a credential."""
    couple_names: str
    access_code: str
    site_url: str
    has_password: bool = True

    def website_url(self, slug: str) -> str:
        return f"{self.site_url.rstrip('/')}/{slug}"

    def dashboard_url(self, slug: str) -> str:
        return f"{self.website_url(slug)}/admin"


class EmailMessage(BaseModel):
    to: str
    subject: str
    html: str
