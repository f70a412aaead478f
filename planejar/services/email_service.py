import logging
from typing import Any, Dict, List, Optional

import resend
from jinja2 import Template

from planejar.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.RESEND_API_KEY

_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background: #1E3A5F; color: white; padding: 20px; text-align: center; }
        .content { padding: 20px; background: #f9fafb; }
        .button { background: #1E3A5F; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block; margin: 20px 0; }
        .footer { text-align: center; padding: 20px; color: #666; font-size: 12px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{{ title }}</h1></div>
        <div class="content">{{ body }}</div>
        <div class="footer"><p>{{ app_name }}</p></div>
    </div>
</body>
</html>
"""

_PASSWORD_RESET_BODY = """
<p>Olá {{ user_name }},</p>
<p>Recebemos um pedido para redefinir a sua senha. Clique no botão abaixo para criar uma nova senha:</p>
<a href="{{ app_url }}/reset-password?token={{ reset_token }}" class="button">Redefinir senha</a>
<p>Este link expira em {{ ttl_hours }} horas.</p>
<p>Se você não fez esse pedido, ignore este e-mail.</p>
"""

_WELCOME_BODY = """
<p>Olá {{ user_name }},</p>
<p>Você foi incluído(a) no projeto <strong>{{ project_name }}</strong>.</p>
<p>Acesse com o e-mail {{ email }} e a senha provisória <strong>{{ password }}</strong>.
Você deverá criar uma nova senha no primeiro acesso.</p>
<a href="{{ app_url }}" class="button">Acessar</a>
"""


class EmailService:
    """Transactional e-mail through Resend, mocked when no API key is configured."""

    @staticmethod
    def render_template(template_str: str, context: Dict[str, Any]) -> str:
        return Template(template_str).render(**context)

    @staticmethod
    def render_layout(title: str, body_template: str, context: Dict[str, Any]) -> str:
        body = EmailService.render_template(body_template, context)
        return EmailService.render_template(
            _LAYOUT, {"title": title, "body": body, "app_name": settings.APP_NAME}
        )

    @staticmethod
    def send_email(to: List[str], subject: str, html_content: str, from_email: Optional[str] = None) -> bool:
        api_key = settings.RESEND_API_KEY
        if not api_key or api_key.startswith("your-"):
            logger.info("Resend API key missing, e-mail to %s not sent (mock)", to)
            return True
        try:
            response = resend.Emails.send({
                "from": from_email or settings.EMAIL_FROM,
                "to": to,
                "subject": subject,
                "html": html_content,
            })
            logger.info("Email sent to %s: %s", to, response)
            return True
        except Exception as e:
            # Delivery failures never break the calling request
            logger.error("Error sending email to %s: %s", to, e)
            return False

    @staticmethod
    def send_password_reset_email(to_email: str, reset_token: str, user_name: str) -> bool:
        html_content = EmailService.render_layout("Redefinição de senha", _PASSWORD_RESET_BODY, {
            "user_name": user_name,
            "reset_token": reset_token,
            "app_url": settings.FRONTEND_URL.rstrip("/"),
            "ttl_hours": settings.PASSWORD_RESET_TTL_HOURS,
        })
        return EmailService.send_email([to_email], "Redefina sua senha", html_content)

    @staticmethod
    def send_welcome_email(to_email: str, user_name: str, project_name: str, password: str) -> bool:
        html_content = EmailService.render_layout(f"Bem-vindo(a) ao {settings.APP_NAME}", _WELCOME_BODY, {
            "user_name": user_name,
            "project_name": project_name,
            "email": to_email,
            "password": password,
            "app_url": settings.FRONTEND_URL.rstrip("/"),
        })
        return EmailService.send_email([to_email], f"Seu acesso ao {settings.APP_NAME}", html_content)


def send_password_reset_email(to_email: str, reset_token: str, user_name: str) -> bool:
    return EmailService.send_password_reset_email(to_email, reset_token, user_name)


def send_welcome_email(to_email: str, user_name: str, project_name: str, password: str) -> bool:
    return EmailService.send_welcome_email(to_email, user_name, project_name, password)
