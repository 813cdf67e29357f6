"""Base class for services that send verification codes by text message."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import ClassVar


class SMS(ABC):
    """A text-message provider that delivers verification codes.

    Subclasses set ``provider_name`` and implement ``_deliver``, which
    receives the full phone number and the template parameters as JSON.
    """

    provider_name: ClassVar[str] = "sms"

    def name(self) -> str:
        """Return the provider's name."""
        return self.provider_name

    def send_code(self, area_code: str, phone_number: str, verify_code: str) -> None:
        """Send the verification code to the phone number."""
        template_param = json.dumps({"code": verify_code}, separators=(",", ":"))
        self._deliver(area_code + phone_number, template_param)

    @abstractmethod
    def _deliver(self, phone_numbers: str, template_param: str) -> None:
        """Hand the message to the provider."""