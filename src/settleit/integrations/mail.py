"""SMTP email sender."""

import smtplib
from email.message import EmailMessage

from settleit.integrations.base import EmailSender


class SmtpEmailSender(EmailSender):
    """Sends plain text messages through an SMTP relay."""

    def __init__(self, host: str, port: int = 25, sender: str = "no-reply@settleit.local", timeout: int = 30):
        self.host = host
        self.port = port
        self.sender = sender
        self.timeout = timeout

    def send(self, recipient: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.send_message(message)
