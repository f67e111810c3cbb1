"""
VaultClient SDK: sync client for Vault Sentry.

Used by scripts and operator tooling to log in, enter sectors, request
access and drive the admin console without a browser.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx


@dataclass
class ClientLoginResult:
    """Result of login() call."""

    success: bool
    role: str = ""
    route: str = ""
    username: str = ""
    full_name: str = ""
    code: str = ""
    message: str = ""


@dataclass
class ClientSectorStats:
    """One sector as shown on the user dashboard."""

    name: str
    count: int = 0
    has_access: bool = False
    expires_at: Optional[datetime] = None
    security_level: str = ""


@dataclass
class ClientDashboard:
    """Result of dashboard_stats() call."""

    success: bool
    username: str = ""
    role: str = ""
    sectors: list[ClientSectorStats] = field(default_factory=list)
    code: str = ""
    message: str = ""


@dataclass
class ClientSectorListing:
    """Result of enter_sector() call."""

    success: bool
    access_type: str = ""
    files: list[dict[str, Any]] = field(default_factory=list)
    code: str = ""
    message: str = ""


class VaultClient:
    """
    Synchronous HTTP client for Vault Sentry.

    Holds the session token returned by login() and attaches it to every
    later call. Errors come back as ``{"error", "code"}`` dicts, the same
    shape the server uses, or as a result dataclass with ``success=False``.
    Nothing raises.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:5000",
        token: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
    ):
        self.server_url = server_url.rstrip("/")
        self.token = token
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
        )

    def _auth_headers(self) -> dict[str, str]:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Central HTTP method with retry and structured error handling.

        Retries on timeouts, transport errors and 5xx other than 503
        (lockdown is an answer, not an outage). 4xx and 503 return the
        server's error body unchanged.
        """
        kwargs.setdefault("headers", {}).update(self._auth_headers())
        last_error = None
        for attempt in range(self.max_retries):
            try:
                resp = getattr(self._http, method)(path, **kwargs)
                if resp.status_code >= 500 and resp.status_code != 503:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                    return {
                        "error": f"Server error: {resp.status_code}",
                        "code": "SERVER_ERROR",
                    }
                data = resp.json()
                if resp.status_code >= 400:
                    if isinstance(data, dict) and "code" in data:
                        return data
                    return {
                        "error": f"Client error: {resp.status_code}",
                        "code": "CLIENT_ERROR",
                    }
                return data
            except httpx.TimeoutException:
                last_error = "timeout"
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except httpx.HTTPError as e:
                last_error = str(e)
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except json.JSONDecodeError:
                return {"error": "Invalid JSON response", "code": "JSON_ERROR"}

        return {"error": f"All {self.max_retries} retries exhausted: {last_error}", "code": "CONNECTION_ERROR"}

    # ── Identity ──

    def register(self, full_name: str, username: str, password: str) -> dict[str, Any]:
        return self._request(
            "post", "/register",
            json={"fullName": full_name, "username": username, "password": password},
        )

    def login(self, username: str, password: str) -> ClientLoginResult:
        """Log in and keep the session token for subsequent calls."""
        data = self._request(
            "post", "/login", json={"username": username, "password": password},
        )
        if "error" in data:
            return ClientLoginResult(
                success=False, code=data.get("code", ""), message=data.get("error", ""),
            )
        self.token = data.get("token")
        return ClientLoginResult(
            success=True,
            role=data.get("role", ""),
            route=data.get("route", ""),
            username=data.get("username", ""),
            full_name=data.get("fullName", ""),
        )

    def migrate_identity(self, old_username: str, password: str, new_username: str) -> dict[str, Any]:
        return self._request(
            "post", "/migrate-identity",
            json={
                "oldUsername": old_username,
                "password": password,
                "newUsername": new_username,
            },
        )

    # ── Sectors and files ──

    def dashboard_stats(self) -> ClientDashboard:
        data = self._request("get", "/dashboard-stats")
        if "error" in data:
            return ClientDashboard(
                success=False, code=data.get("code", ""), message=data.get("error", ""),
            )
        stats = []
        for name, info in data.get("stats", {}).items():
            expires_at = None
            if info.get("expiresAt"):
                try:
                    expires_at = datetime.fromisoformat(info["expiresAt"])
                except (ValueError, TypeError):
                    pass
            stats.append(ClientSectorStats(
                name=name,
                count=info.get("count", 0),
                has_access=info.get("hasAccess", False),
                expires_at=expires_at,
                security_level=info.get("securityLevel", ""),
            ))
        return ClientDashboard(
            success=True,
            username=data.get("username", ""),
            role=data.get("role", ""),
            sectors=stats,
        )

    def enter_sector(self, sector: str, password: str) -> ClientSectorListing:
        data = self._request(
            "post", "/department-data",
            json={"department": sector, "password": password},
        )
        if "error" in data:
            return ClientSectorListing(
                success=False, code=data.get("code", ""), message=data.get("error", ""),
            )
        return ClientSectorListing(
            success=True,
            access_type=data.get("accessType", ""),
            files=data.get("files", []),
        )

    def request_access(self, sector: str, duration: int, reason: str = "") -> dict[str, Any]:
        return self._request(
            "post", "/request-access",
            json={"department": sector, "duration": duration, "reason": reason},
        )

    def upload(
        self, sector: str, filename: str, passcode: str = "", status: str = "Locked",
    ) -> dict[str, Any]:
        return self._request(
            "post", "/upload",
            json={
                "department": sector,
                "filename": filename,
                "passcode": passcode,
                "status": status,
            },
        )

    def unlock_file(self, file_id: str, passcode: str) -> dict[str, Any]:
        return self._request("post", "/unlock-file", json={"id": file_id, "passcode": passcode})

    def rename_file(self, file_id: str, new_name: str) -> dict[str, Any]:
        return self._request("post", "/rename-file", json={"id": file_id, "newName": new_name})

    def delete_own_file(self, file_id: str) -> dict[str, Any]:
        return self._request("post", "/delete-own-file", json={"id": file_id})

    # ── Admin ──

    def admin_data(self) -> dict[str, Any]:
        return self._request("get", "/admin/data")

    def update_firewall_rules(self, id_pattern: str, allowed_domain: str) -> dict[str, Any]:
        return self._request(
            "post", "/admin/settings",
            json={"idPattern": id_pattern, "allowedDomain": allowed_domain},
        )

    def set_lockdown(self, enabled: bool) -> dict[str, Any]:
        return self._request("post", "/admin/lockdown", json={"enabled": enabled})

    def delete_file(self, file_id: str) -> dict[str, Any]:
        """Remove any file regardless of owner."""
        return self._request("post", "/admin/delete-file", json={"id": file_id})

    def list_sectors(self) -> list[dict[str, Any]] | dict[str, Any]:
        return self._request("get", "/admin/sectors")

    def add_sector(self, name: str, level: str = "Low") -> dict[str, Any]:
        return self._request("post", "/admin/sectors", json={"name": name, "level": level})

    def delete_sector(self, name: str) -> dict[str, Any]:
        return self._request("delete", f"/admin/sectors/{name}")

    def decide_request(self, request_id: str, action: str) -> dict[str, Any]:
        return self._request(
            "post", "/admin/approve-request",
            json={"requestId": request_id, "action": action},
        )

    def verify_audit(self) -> dict[str, Any]:
        return self._request("get", "/admin/audit/verify")

    # ── Lifecycle ──

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()
