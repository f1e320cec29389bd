"""Server-side reCAPTCHA v3 verification."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Settings
from .tts.errors import VerificationError, VerificationMisconfigured

logger = logging.getLogger(__name__)


class RecaptchaVerifier:
    """Check caller tokens against the reCAPTCHA ``siteverify`` endpoint.

    A token is accepted when the endpoint reports success and a score of at
    least ``min_score``. A verifier without a secret key is a deployment
    error, never a bypass.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.verify_url = str(settings.recaptcha_verify_url)
        self.min_score = settings.recaptcha_min_score
        self._secret = (
            settings.recaptcha_secret_key.get_secret_value()
            if settings.recaptcha_secret_key
            else None
        )
        self._http_client = http_client

    async def verify(self, token: str | None, remote_ip: str | None = None) -> float:
        """Return the score for an accepted token, raise otherwise."""

        if not self._secret:
            logger.error("reCAPTCHA secret key not configured")
            raise VerificationMisconfigured()
        if not token:
            raise VerificationError("Verification token is required")

        data = {"secret": self._secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.verify_url, data=data)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.post(self.verify_url, data=data)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"reCAPTCHA verification request failed: {exc}")
            raise VerificationError("Verification failed") from exc

        success = bool(body.get("success"))
        try:
            score = float(body.get("score", 0.0))
        except (TypeError, ValueError):
            score = 0.0

        if not success or score < self.min_score:
            logger.warning(
                "reCAPTCHA rejected token (success=%s, score=%.2f, errors=%s)",
                success,
                score,
                body.get("error-codes"),
            )
            raise VerificationError("Verification failed")

        logger.debug("reCAPTCHA accepted token with score %.2f", score)
        return score


__all__ = ["RecaptchaVerifier"]
