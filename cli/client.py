from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the slot and reservation API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_slots(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/slots")

    def set_occupancy(self, slot_id: int, occupied: bool) -> Dict[str, Any]:
        return self._request("PUT", f"/slots/{slot_id}/occupancy", json={"occupied": occupied})

    def create_reservation(
        self, slot_id: int, user_id: str, duration_minutes: float
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/reservations",
            json={
                "slot_id": slot_id,
                "user_id": user_id,
                "duration_minutes": duration_minutes,
            },
        )

    def list_reservations(
        self, slot_id: Optional[int] = None, user_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if slot_id is not None:
            params["slot_id"] = slot_id
        if user_id is not None:
            params["user_id"] = user_id
        return self._request("GET", "/reservations", params=params)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail") if isinstance(data, dict) else None
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
