"""
dashboard_client.py

A small Python client for the Blood Drive Dashboard API, for scripts and
kiosk/front-desk tools.

What it provides:
- AuthSession: explicit sign-in state (anonymous -> authenticating ->
  authenticated | failed) with change listeners, passed to whatever needs the
  current user and role
- DashboardApiClient: JWT login + authenticated requests for
  - stock (+/- per blood type) and the dashboard
  - appointments (list by view/search, complete, no-show)
  - camps and geocoding (organizers)

Calls are never retried automatically: a failed request raises ApiError and
the caller decides whether to try again.

Environment variables expected:
- BLOOD_API_URL: e.g. "https://your-domain.com/api"
- BLOOD_API_EMAIL / BLOOD_API_PASSWORD: the account to sign in with

Dependencies:
- requests (pip install requests)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class AuthSession:
    """Who is signed in. Listeners get the session after every state change."""

    state: SessionState = SessionState.ANONYMOUS
    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    _listeners: List[Callable[["AuthSession"], None]] = field(default_factory=list, repr=False)

    @property
    def role(self) -> Optional[str]:
        if self.state != SessionState.AUTHENTICATED or not self.user:
            return None
        return self.user.get("role")

    @property
    def user_id(self) -> Optional[str]:
        return (self.user or {}).get("id")

    def on_change(self, callback: Callable[["AuthSession"], None]) -> Callable[[], None]:
        """Register a listener; returns an idempotent unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _set(self, state: SessionState, *, token=None, user=None, error=None) -> None:
        self.state = state
        self.token = token
        self.user = user
        self.error = error
        for callback in list(self._listeners):
            callback(self)

    def begin(self) -> None:
        self._set(SessionState.AUTHENTICATING)

    def succeed(self, token: str, user: Dict[str, Any]) -> None:
        self._set(SessionState.AUTHENTICATED, token=token, user=user)

    def fail(self, error: str) -> None:
        self._set(SessionState.FAILED, error=error)

    def clear(self) -> None:
        self._set(SessionState.ANONYMOUS)


@dataclass
class DashboardApiClient:
    base_url: str
    session: AuthSession = field(default_factory=AuthSession)
    http: Any = requests  # anything with requests' .request(method, url, ...) signature
    timeout: float = 30

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def _send(self, method: str, path: str, **kwargs) -> Any:
        resp = self.http.request(method, self._url(path), timeout=self.timeout, **kwargs)
        if resp.status_code >= 400:
            raise ApiError(f"{method} {path} failed ({resp.status_code}): {resp.text}", resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def _request(self, method: str, path: str, *, json: Any = None, params: Dict[str, Any] | None = None) -> Any:
        if self.session.state != SessionState.AUTHENTICATED:
            raise ApiError("Not signed in")
        return self._send(method, path, json=json, params=params, headers=self._headers())

    # ----------------------------
    # Auth
    # ----------------------------

    def login(self, email: str, password: str) -> AuthSession:
        """
        FastAPI-Users JWT login (POST /auth/jwt/login, form fields username/password),
        then GET /users/me for the role.
        """
        self.session.begin()
        try:
            data = self._send(
                "POST",
                "/auth/jwt/login",
                data={"username": email, "password": password},
                headers={"Accept": "application/json"},
            )
            token = (data or {}).get("access_token")
            if not token:
                raise ApiError(f"Login response missing access_token: {data}")
            user = self._send(
                "GET",
                "/users/me",
                headers={"Accept": "application/json", "Authorization": f"Bearer {token}"},
            )
        except (ApiError, requests.RequestException) as e:
            self.session.fail(str(e))
            raise ApiError(f"Login failed: {e}") from e
        self.session.succeed(token, user)
        return self.session

    def signup(self, email: str, password: str, display_name: str, role: str = "donor") -> AuthSession:
        """POST /auth/register, then sign in with the new account."""
        self._send(
            "POST",
            "/auth/register",
            json={"email": email, "password": password, "display_name": display_name, "role": role},
            headers={"Accept": "application/json"},
        )
        return self.login(email, password)

    def logout(self) -> None:
        try:
            if self.session.token:
                self._send("POST", "/auth/jwt/logout", headers=self._headers())
        finally:
            self.session.clear()

    def get_user_profile(self, user_id: str) -> Any:
        return self._request("GET", f"/profiles/{user_id}")

    # ----------------------------
    # Hospital: stock + schedule
    # ----------------------------

    def register_venue(self, *, name: str, address: Optional[str] = None, lat: Optional[float] = None, lng: Optional[float] = None) -> Any:
        return self._request("POST", "/venues", json={"name": name, "address": address, "lat": lat, "lng": lng})

    def get_inventory(self) -> Any:
        return self._request("GET", "/inventory")

    def update_stock(self, blood_type: str, change: int) -> Any:
        """Calls: POST /inventory/adjust (backend rejects a count going below zero)."""
        return self._request("POST", "/inventory/adjust", json={"blood_type": blood_type, "change": change})

    def list_appointments(self, view: str = "active", search: str = "") -> Any:
        params: Dict[str, Any] = {"view": view}
        if search:
            params["q"] = search
        return self._request("GET", "/appointments", params=params)

    def complete_appointment(self, appointment_id: str, confirmed_blood_type: str) -> Any:
        """Calls: POST /appointments/{id}/complete. Adds one unit of the confirmed type to stock."""
        return self._request(
            "POST",
            f"/appointments/{appointment_id}/complete",
            json={"confirmed_blood_type": confirmed_blood_type},
        )

    def mark_no_show(self, appointment_id: str) -> Any:
        return self._request("POST", f"/appointments/{appointment_id}/no-show")

    def get_dashboard(self, view: str = "active", search: str = "") -> Any:
        params: Dict[str, Any] = {"view": view}
        if search:
            params["q"] = search
        return self._request("GET", "/dashboard", params=params)

    # ----------------------------
    # Donor + organizer helpers
    # ----------------------------

    def book_appointment(self, *, venue_id: str, date: str, time_slot: str) -> Any:
        return self._request("POST", "/appointments", json={"venue_id": venue_id, "date": date, "time_slot": time_slot})

    def list_camps(self) -> Any:
        return self._request("GET", "/camps")

    def add_camp(
        self,
        *,
        camp_name: str,
        organizer_name: str,
        contact: str,
        address: str,
        date: str,  # "YYYY-MM-DD"
        start_time: str,  # "HH:MM"
        end_time: str,
        lat: float,
        lng: float,
    ) -> Any:
        payload = {
            "camp_name": camp_name,
            "organizer_name": organizer_name,
            "contact": contact,
            "address": address,
            "date": date,
            "start_time": start_time,
            "end_time": end_time,
            "location": {"lat": lat, "lng": lng},
        }
        return self._request("POST", "/camps", json=payload)

    def search_location(self, query: str) -> Any:
        return self._request("GET", "/geocode/search", params={"q": query})

    def reverse_geocode(self, lat: float, lng: float) -> Any:
        return self._request("GET", "/geocode/reverse", params={"lat": lat, "lng": lng})


def make_client_from_env() -> DashboardApiClient:
    base_url = os.getenv("BLOOD_API_URL", "").strip()
    email = os.getenv("BLOOD_API_EMAIL", "").strip()
    password = os.getenv("BLOOD_API_PASSWORD", "").strip()

    if not base_url:
        raise RuntimeError("Missing BLOOD_API_URL")
    if not email:
        raise RuntimeError("Missing BLOOD_API_EMAIL")
    if not password:
        raise RuntimeError("Missing BLOOD_API_PASSWORD")

    client = DashboardApiClient(base_url=base_url)
    client.login(email, password)
    return client


if __name__ == "__main__":
    client = make_client_from_env()
    print(f"Signed in as {client.session.user_id} ({client.session.role})")

    if client.session.role == "hospital":
        for card in client.get_inventory()["cards"]:
            print(f"{card['blood_type']:>3}  {card['count']:>4}  {card['status']}")
