"""DevCycle Management API client."""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from ..models.destination import (
    CUSTOM_PROPERTY_TYPES,
    CustomDataProperty,
    CustomPropertyResponse,
    DestinationFeature,
    FeatureCreateResponse,
    TargetingRule,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.devcycle.com/v1"


class DevCycleAPIError(Exception):
    """A DevCycle API call returned an unexpected response."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            message = f"{message}: API returned error {status_code}: {body}"
        super().__init__(message)


class ConflictError(DevCycleAPIError):
    """409: the object already exists."""


class ServerError(DevCycleAPIError):
    """5xx response from DevCycle."""


def convert_custom_property_type(data_type: Optional[str]) -> str:
    """Map a declared custom data type to a DevCycle property type (String when unknown)."""
    for known in CUSTOM_PROPERTY_TYPES:
        if (data_type or "").lower() == known.lower():
            return known
    return "String"


class DevCycleClient:
    """
    Client for the DevCycle Management API.

    Handles:
    - Custom property listing and creation
    - Feature creation
    - Feature configuration (targeting rules) per environment
    - Dry runs that log instead of calling the API
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        dry_run: bool = False,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            token: Bearer token for the Management API
            base_url: API base URL
            timeout: Per-request timeout in seconds
            dry_run: If True, simulate without making changes
            session: Custom requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.dry_run = dry_run
        self._token = token
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()
        session.headers["Authorization"] = f"Bearer {self._token}"
        session.headers["Content-Type"] = "application/json"
        return session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        url = self._url(path)
        logger.debug(f"{method} {url}")
        return self._session.request(method, url, json=json, params=params, timeout=self.timeout)

    @staticmethod
    def _raise_for_status(response: requests.Response, expected: int, action: str) -> None:
        if response.status_code == expected:
            return
        if response.status_code == 409:
            raise ConflictError(action, response.status_code, response.text)
        if response.status_code >= 500:
            raise ServerError(action, response.status_code, response.text)
        raise DevCycleAPIError(action, response.status_code, response.text)

    # Custom properties

    def list_custom_properties(self, project: str) -> List[CustomDataProperty]:
        """List the custom properties registered in a project."""
        if self.dry_run:
            logger.info(f"[dry run] Would list custom properties for {project}")
            return []

        response = self._request("GET", f"/projects/{project}/customProperties")
        self._raise_for_status(response, 200, "Failed to list custom properties")

        try:
            payload = response.json()
            # Some API versions wrap list responses in {"data": [...]}
            if isinstance(payload, dict):
                payload = payload.get("data", [])
            return [CustomPropertyResponse.model_validate(p).to_property() for p in payload]
        except (ValueError, ValidationError) as e:
            raise DevCycleAPIError(
                f"Failed to parse custom properties response: {e}",
                response.status_code,
                response.text,
            ) from e

    def create_custom_property(self, project: str, key: str, data_type: Optional[str]) -> CustomDataProperty:
        """Create a custom property for a custom data key."""
        prop = CustomDataProperty(
            key=key.lower(),
            property_key=key,
            name=key,
            type=convert_custom_property_type(data_type),
        )

        if self.dry_run:
            logger.info(f"[dry run] Would create custom property {key} ({prop.type})")
            return prop

        response = self._request("POST", f"/projects/{project}/customProperties", json=prop.to_dict())
        self._raise_for_status(response, 201, f"Failed to create custom property {key}")
        return prop

    # Features

    def create_feature(self, project: str, feature: DestinationFeature) -> FeatureCreateResponse:
        """
        Create a feature.

        Raises:
            ConflictError: the feature key already exists
            ServerError: DevCycle returned a 5xx response
            DevCycleAPIError: any other unexpected response
        """
        if self.dry_run:
            logger.info(f"[dry run] Would create feature {feature.key}")
            return FeatureCreateResponse(
                id=f"dry-run-{feature.key}",
                key=feature.key,
                variations=[{"_id": f"dry-run-{v.key}", "key": v.key} for v in feature.variations],
            )

        response = self._request("POST", f"/projects/{project}/features", json=feature.to_dict())
        self._raise_for_status(response, 201, f"Failed to create feature {feature.key}")

        try:
            return FeatureCreateResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DevCycleAPIError(
                f"Failed to parse feature creation response: {e}",
                response.status_code,
                response.text,
            ) from e

    def update_feature_configuration(
        self,
        project: str,
        feature_key: str,
        environment: str,
        targets: List[TargetingRule],
        status: str = "active"
    ) -> None:
        """Replace the targeting rules of a feature in one environment."""
        payload = {
            "targets": [t.to_dict() for t in targets],
            "status": status,
        }

        if self.dry_run:
            logger.info(f"[dry run] Would configure {feature_key} in {environment} with {len(targets)} target(s)")
            return

        response = self._request(
            "PATCH",
            f"/projects/{project}/features/{feature_key}/configurations",
            json=payload,
            params={"environment": environment},
        )
        self._raise_for_status(
            response, 200, f"Failed to configure feature {feature_key} in {environment}"
        )
