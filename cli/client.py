from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Thin HTTP client for the sensor energy ledger service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.http_timeout)

    def close(self) -> None:
        self._client.close()

    def write_reading(self, pwm: float, rpm: float, load_weight: float) -> str:
        response = self._request(
            "POST",
            "/sensors",
            json={"pwm": pwm, "rpm": rpm, "load_weight": load_weight},
        )
        payload = response.json()
        return str(payload.get("message", "written"))

    def latest_reading(self) -> Optional[Dict[str, Any]]:
        response = self._request("GET", "/sensors", allow_not_found=True)
        if response is None:
            return None
        return response.json()

    def history(self) -> Dict[str, Any]:
        return self._request("GET", "/sensors/history").json()

    def ledger_entry(self, day: date) -> Dict[str, Any]:
        response = self._request("GET", f"/ledger/{day.isoformat()}", allow_not_found=True)
        if response is None:
            raise typer.BadParameter(f"No ledger entry for {day.isoformat()}.")
        return response.json()

    def ledger_entries(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/ledger").json()

    def _request(
        self, method: str, url: str, allow_not_found: bool = False, **kwargs: Any
    ) -> Any:
        try:
            response = self._client.request(method, url, **kwargs)
            if allow_not_found and response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
