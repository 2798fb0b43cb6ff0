"""Customer.io Track API client: mirrors preference changes onto customers."""

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional
from urllib.parse import quote

import httpx

from mailprefs import __version__
from mailprefs.core.config import DEFAULT_BRAND_ATTRIBUTES, Settings
from mailprefs.core.exceptions import ExternalAPIError, RelationshipMoveError, ValidationError
from mailprefs.core.logging_setup import mask_secret

logger = logging.getLogger("mailprefs.track")

USER_AGENT = f"mailprefs/{__version__}"

SUBSCRIPTION_VALUES = {"true": True, "false": False, "none": None}


class TrackClient:
    """Attribute and relationship updates against ``PUT /customers/{id}``.

    Every call is a single attempt: a non-2xx status, a transport error or
    an unencodable payload raises ExternalAPIError and nothing is retried.
    """

    def __init__(
        self,
        site_id: str,
        api_key: str,
        base_url: str = "https://track.customer.io/api/v1",
        timeout: float = 10.0,
        object_type_id: str = "1",
        domestic_list_id: str = "BBUS",
        international_list_id: str = "BBAU",
        brand_attributes: Iterable[str] = DEFAULT_BRAND_ATTRIBUTES,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.object_type_id = object_type_id
        self.domestic_list_id = domestic_list_id
        self.international_list_id = international_list_id
        self.brand_attributes = list(brand_attributes)
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(site_id, api_key),
            timeout=timeout,
            headers={"Content-Type": "application/json", "User-Agent": USER_AGENT},
            transport=transport,
        )
        logger.info(
            "Track API client ready (site=%s, key=%s, timeout=%ss)",
            site_id, mask_secret(api_key), timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "TrackClient":
        return cls(
            site_id=settings.CUSTOMERIO_SITE_ID,
            api_key=settings.CUSTOMERIO_API_KEY,
            base_url=settings.CUSTOMERIO_TRACK_URL,
            timeout=settings.CUSTOMERIO_TIMEOUT_SECONDS,
            object_type_id=settings.RELATIONSHIP_OBJECT_TYPE_ID,
            domestic_list_id=settings.DOMESTIC_LIST_ID,
            international_list_id=settings.INTERNATIONAL_LIST_ID,
            brand_attributes=settings.BRAND_ATTRIBUTES,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TrackClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- Preference operations ----

    def set_paused(self, identifier: str, paused: bool) -> None:
        """Set the ``paused`` attribute. Works with an email or a customer id."""
        self._put(identifier, {"paused": paused})

    def unsubscribe(self, email: str) -> None:
        """Set the permanent ``unsubscribed`` flag."""
        self._put(email, {"unsubscribed": True})

    def move_to_international_list(self, email: str) -> None:
        """Remove the domestic relationship, then add the international one.

        The two PUTs are independent. If the removal fails the add is never
        sent. If the add fails after a successful removal the customer sits
        in neither list and RelationshipMoveError(removed=True) is raised.
        Both steps are idempotent upstream, so the whole move can be re-run.
        """
        self._put(email, self._relationship_payload("delete_relationships", self.domestic_list_id))
        try:
            self._put(email, self._relationship_payload("add_relationships", self.international_list_id))
        except ExternalAPIError as e:
            logger.error(
                "List move for %s is half done: %s removed but %s not added",
                email, self.domestic_list_id, self.international_list_id,
            )
            raise RelationshipMoveError(
                f"Removed {self.domestic_list_id} but failed to add {self.international_list_id}: {e.message}",
                removed=True,
                identifier=e.identifier,
                url=e.url,
                status_code=e.status_code,
                response_body=e.response_body,
            ) from e

    def update_subscriptions(self, email: str, subscriptions: Mapping[str, str]) -> None:
        """Set per-brand flags from ``"true"``/``"false"``/``"none"`` values.

        ``"none"`` removes the attribute. Any active subscription also clears
        ``unsubscribed``, which is how a customer re-subscribes.
        """
        self._put(email, build_subscription_attributes(subscriptions))

    def unsubscribe_all_brands(self, email: str) -> None:
        """Set ``unsubscribed`` and drop every known brand attribute in one call."""
        attributes: Dict[str, Any] = {"unsubscribed": True}
        for key in self.brand_attributes:
            attributes[key] = None
        self._put(email, attributes)

    # ---- Internals ----

    def _relationship_payload(self, action: str, object_id: str) -> Dict[str, Any]:
        return {
            "cio_relationships": {
                "action": action,
                "relationships": [
                    {
                        "identifiers": {
                            "object_type_id": self.object_type_id,
                            "object_id": object_id,
                        }
                    }
                ],
            }
        }

    def _put(self, identifier: str, payload: Dict[str, Any]) -> httpx.Response:
        if not identifier or not identifier.strip():
            raise ValidationError("Customer identifier is required")
        identifier = identifier.strip()
        path = f"customers/{quote(identifier, safe='@')}"
        url = f"{self._client.base_url}{path}"

        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            logger.error("Could not encode Track API payload for %s: %s", identifier, e)
            raise ExternalAPIError(
                f"Error encoding Track API payload: {e}", identifier=identifier, url=url
            ) from e

        logger.debug("PUT %s payload=%s", url, body)
        try:
            resp = self._client.put(path, content=body)
        except httpx.HTTPError as e:
            logger.error("Track API request for %s to %s failed: %s", identifier, url, e)
            raise ExternalAPIError(
                f"Error sending Track API request: {e}", identifier=identifier, url=url
            ) from e

        if not resp.is_success:
            logger.error(
                "Track API returned %s for %s (%s). Body: %s",
                resp.status_code, identifier, url, resp.text,
            )
            raise ExternalAPIError(
                f"Track API returned status {resp.status_code} for {identifier}",
                identifier=identifier,
                url=url,
                status_code=resp.status_code,
                response_body=resp.text,
            )

        logger.info("Track API update for %s succeeded (status %s)", identifier, resp.status_code)
        return resp


def build_subscription_attributes(subscriptions: Mapping[str, str]) -> Dict[str, Any]:
    """Translate brand → "true"/"false"/"none" into Track API attributes.

    Values must be lower-case, matching what the request schema accepts.
    """
    attributes: Dict[str, Any] = {}
    for key, value in subscriptions.items():
        if value not in SUBSCRIPTION_VALUES:
            raise ValidationError(f"Invalid subscription value for {key}: {value!r}")
        attributes[key] = SUBSCRIPTION_VALUES[value]

    if any(value is True for value in attributes.values()):
        attributes["unsubscribed"] = False
    return attributes
