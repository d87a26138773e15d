from typing import Dict, Optional, Tuple

import resend


class Mailer:
    def __init__(self, api_key: str, sender: str, store_name: str = "Smartmart", link_ttl_minutes: int = 5):
        self.api_key = (api_key or "").strip()
        self.sender = sender
        self.store_name = store_name
        self.link_ttl_minutes = link_ttl_minutes

    def send(self, payload: Dict[str, object]) -> Tuple[bool, Optional[str]]:
        if not self.api_key:
            return False, "Resend API key is not configured."

        previous_api_key = getattr(resend, "api_key", None)
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(payload)
        except Exception as exc:
            return False, str(exc)
        finally:
            resend.api_key = previous_api_key

        if not isinstance(response, dict) or not response.get("id"):
            return False, str(response)

        return True, None

    def send_verification_email(self, recipient_email: str, link: str):
        html_body = f"""<!DOCTYPE html>
<html lang="en">
  <body style="font-family:'Helvetica Neue',Arial,sans-serif;">
    <p>Welcome to {self.store_name}! Please click the link below to verify your email:</p>
    <p><a href="{link}">{link}</a></p>
    <p>This link will expire in {self.link_ttl_minutes} minutes.</p>
  </body>
</html>"""
        text_body = (
            f"Welcome to {self.store_name}! Verify your email within "
            f"{self.link_ttl_minutes} minutes: {link}"
        )
        payload: Dict[str, object] = {
            "from": f"{self.store_name} <{self.sender}>",
            "to": [recipient_email],
            "subject": "Please verify your email",
            "html": html_body,
            "text": text_body,
        }
        return self.send(payload)
