# utils/email.py
import requests

from config import BREVO_API_KEY, MAIL_SENDER_NAME, MAIL_SENDER_EMAIL


def send_notification_email(to_email: str, title: str, body: str, link: str | None = None):
     if not BREVO_API_KEY:
          raise Exception("BREVO_API_KEY is not set")

     link_html = f'<p><a href="{link}">Open HealthChain</a></p>' if link else ""
     response = requests.post(
          "https://api.brevo.com/v3/smtp/email",
          headers={
               "api-key": BREVO_API_KEY,
               "Content-Type": "application/json",
          },
          json={
               "sender": {"name": MAIL_SENDER_NAME, "email": MAIL_SENDER_EMAIL},
               "to": [{"email": to_email}],
               "subject": title,
               "htmlContent": f"""
                    <h2>{title}</h2>
                    <p>{body}</p>
                    {link_html}
               """,
          },
          timeout=10,
     )
     if response.status_code not in (200, 201):
          raise Exception(f"Brevo error: {response.text}")
