"""Sending verification codes by e-mail."""

from __future__ import annotations

import smtplib
import ssl
from collections.abc import Callable
from email.message import EmailMessage
from typing import Any

_BODY = (
    "Your verification code is: {code}. This code is valid for 5 minutes "
    "and should not be shared with others"
)
_SSL_PORT = 465


class Mail:
    """Sends verification codes through an SMTP server.

    Port 465 is reached over SSL; on other ports STARTTLS is used when the
    server offers it. A ``smtp_factory`` called as
    ``factory(host, port, timeout=...)`` may supply a ready client instead.
    """

    def __init__(
        self,
        smtp_addr: str,
        smtp_port: int,
        sender_mail: str,
        sender_authorization_code: str,
        title: str,
        *,
        timeout: float = 30.0,
        smtp_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._smtp_addr = smtp_addr
        self._smtp_port = smtp_port
        self._sender_mail = sender_mail
        self._sender_authorization_code = sender_authorization_code
        self._title = title
        self._timeout = timeout
        self._smtp_factory = smtp_factory

    def name(self) -> str:
        """Return the name of this sender."""
        return "mail"

    def build_message(self, mail: str, verify_code: str) -> EmailMessage:
        """Return the message that carries the code to the given address."""
        message = EmailMessage()
        message["From"] = self._sender_mail
        message["To"] = mail
        message["Subject"] = self._title
        message.set_content(_BODY.format(code=verify_code), subtype="html")
        return message

    def _connect(self):
        if self._smtp_factory is not None:
            return self._smtp_factory(self._smtp_addr, self._smtp_port, timeout=self._timeout)
        if self._smtp_port == _SSL_PORT:
            return smtplib.SMTP_SSL(
                self._smtp_addr,
                self._smtp_port,
                timeout=self._timeout,
                context=ssl.create_default_context(),
            )
        client = smtplib.SMTP(self._smtp_addr, self._smtp_port, timeout=self._timeout)
        try:
            client.ehlo()
            if client.has_extn("starttls"):
                client.starttls(context=ssl.create_default_context())
                client.ehlo()
        except BaseException:
            client.close()
            raise
        return client

    def send_mail(self, mail: str, verify_code: str) -> None:
        """Send the verification code to the address."""
        message = self.build_message(mail, verify_code)
        with self._connect() as client:
            if self._sender_authorization_code:
                client.login(self._sender_mail, self._sender_authorization_code)
            client.send_message(message)