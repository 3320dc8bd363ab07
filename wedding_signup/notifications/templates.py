# wedding_signup/notifications/templates.py
from html import escape
from typing import Dict

from .models import EmailMessage, WelcomeContext

WELCOME_STRINGS: Dict[str, Dict[str, str]] = {
    "en": {
        "subject": "Welcome to Reflets de Bonheur!",
        "greeting": "Dear {names},",
        "intro": "Your wedding space has been created successfully! Here's everything you need to get started.",
        "access": "You can sign in anytime to access your wedding dashboard:",
        "button": "Go to My Dashboard",
        "website": "Your wedding website:",
        "guest_code": "Guest access code:",
        "guest_code_help": "Share this code with your guests so they can upload photos and leave messages.",
        "footer": "With love, the Reflets de Bonheur Team",
    },
    "fr": {
        "subject": "Bienvenue sur Reflets de Bonheur !",
        "greeting": "Cher(e)s {names},",
        "intro": "Votre espace mariage a été créé avec succès ! Voici tout ce dont vous avez besoin pour commencer.",
        "access": "Connectez-vous à tout moment pour accéder à votre espace mariage :",
        "button": "Accéder à mon espace",
        "website": "Votre site de mariage :",
        "guest_code": "Code d'accès invités :",
        "guest_code_help": "Partagez ce code avec vos invités pour qu'ils puissent envoyer des photos et laisser des messages.",
        "footer": "Avec amour, l'équipe Reflets de Bonheur",
    },
    "es": {
        "subject": "¡Bienvenido/a a Reflets de Bonheur!",
        "greeting": "Queridos {names},",
        "intro": "¡Su espacio de boda ha sido creado con éxito! Aquí tiene todo lo que necesita para comenzar.",
        "access": "Inicie sesión en cualquier momento para acceder a su espacio de boda:",
        "button": "Ir a mi espacio",
        "website": "Su sitio web de boda:",
        "guest_code": "Código de acceso para invitados:",
        "guest_code_help": "Comparta este código con sus invitados para que puedan subir fotos y dejar mensajes.",
        "footer": "Con cariño, el equipo de Reflets de Bonheur",
    },
}


def render_welcome_email(to: str, slug: str, locale: str, context: WelcomeContext) -> EmailMessage:
    # Unknown locales fall back to English
    t = WELCOME_STRINGS.get(locale, WELCOME_STRINGS["en"])
    website = escape(context.website_url(slug))
    dashboard = escape(context.dashboard_url(slug))
    html = (
        f"<p>{escape(t['greeting'].format(names=context.couple_names))}</p>"
        f"<p>{escape(t['intro'])}</p>"
        f"<p>{escape(t['access'])}</p>"
        f'<p><a href="{dashboard}">{escape(t["button"])}</a></p>'
        f'<p>{escape(t["website"])} <a href="{website}">{website}</a></p>'
        f"<p>{escape(t['guest_code'])} <strong>{escape(context.access_code)}</strong><br>"
        f"{escape(t['guest_code_help'])}</p>"
        f"<p>{escape(t['footer'])}</p>"
    )
    return EmailMessage(to=to, subject=t["subject"], html=html)
