"""
Reservation store backed by the booking platform's REST API.
"""

import asyncio
import logging
from typing import Any, List, Optional

import requests
from pendulum import DateTime

from ..domain.exceptions import ReservationConflictError, ReservationStoreError
from ..domain.models import Reservation
from ..domain.schedule import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


class HttpReservationStore:
    """
    Client for the booking API's reservation endpoints.

    Uses ``GET /providers/{id}/reservations`` to query and ``POST`` on the same
    path to store. Blocking ``requests`` calls run in a worker thread.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30,
        timezone: str = DEFAULT_TIMEZONE,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Root URL of the booking API, e.g. https://api.example.com/api/v1
            api_token: Optional bearer token
            timeout: Request timeout in seconds
            timezone: IANA timezone for timestamps without an offset
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.timezone = timezone
        self.headers = {"Content-Type": "application/json"}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"

    def _url(self, provider_id: str) -> str:
        return f"{self.base_url}/providers/{provider_id}/reservations"

    async def fetch_active_reservations(
        self,
        provider_id: str,
        start: DateTime,
        end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Reservation]:
        return await asyncio.to_thread(
            self.get_reservations, provider_id, start, end, exclude_id
        )

    async def insert_reservation(self, reservation: Reservation) -> Reservation:
        return await asyncio.to_thread(self.post_reservation, reservation)

    def get_reservations(
        self,
        provider_id: str,
        start: DateTime,
        end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Get active reservations overlapping ``[start, end)``.

        Raises:
            ReservationStoreError: If the API call fails or returns malformed data
        """
        params = {
            "start": start.to_iso8601_string(),
            "end": end.to_iso8601_string(),
            "active": "true",
        }
        if exclude_id:
            params["exclude"] = exclude_id

        try:
            response = requests.get(
                self._url(provider_id),
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise ReservationStoreError(f"Failed to fetch reservations for {provider_id}: {e}") from e
        except ValueError as e:
            raise ReservationStoreError(f"Booking API returned invalid JSON: {e}") from e

        return self._parse_reservations(data, exclude_id)

    def post_reservation(self, reservation: Reservation) -> Reservation:
        """
        Store a reservation.

        Raises:
            ReservationConflictError: If the API reports an overlap (HTTP 409)
            ReservationStoreError: If the API call fails
        """
        try:
            response = requests.post(
                self._url(reservation.provider_id),
                headers=self.headers,
                json=reservation.to_dict(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ReservationStoreError(f"Failed to store reservation {reservation.id}: {e}") from e

        if response.status_code == 409:
            raise ReservationConflictError(
                f"Booking API rejected reservation {reservation.id} as overlapping"
            )

        try:
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ReservationStoreError(f"Failed to store reservation {reservation.id}: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            return reservation

        record = payload.get("data", payload) if isinstance(payload, dict) else None
        if not record:
            return reservation
        try:
            return Reservation.from_dict(record, self.timezone)
        except (KeyError, TypeError, ValueError) as e:
            raise ReservationStoreError(f"Booking API returned a malformed reservation: {e}") from e

    def _parse_reservations(
        self,
        response_data: Any,
        exclude_id: Optional[str],
    ) -> List[Reservation]:
        """
        Parse the API response into our domain model.

        Response format:
        {
            "success": true,
            "data": [
                {
                    "id": "...",
                    "providerId": "...",
                    "start": "2025-03-03T09:00:00+05:30",
                    "end": "2025-03-03T09:30:00+05:30",
                    "status": "confirmed"
                }
            ]
        }
        """
        if isinstance(response_data, dict):
            records = response_data.get("data", [])
        else:
            records = response_data

        if not isinstance(records, list):
            raise ReservationStoreError("Booking API response has no reservation list")

        reservations: List[Reservation] = []
        for record in records:
            try:
                reservation = Reservation.from_dict(record, self.timezone)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Could not parse reservation record: %s", e)
                continue
            # Drop records the API did not filter out
            if reservation.is_active and reservation.id != exclude_id:
                reservations.append(reservation)

        return reservations
