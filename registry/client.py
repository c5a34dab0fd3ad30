"""
Python client for the registry API.

Session state (the bearer token, its admin flag and whether the user
chose manual name/phone sign-in) is held in an explicit
:class:`SessionContext`.  The client loads it from, and saves it to, an
injected :class:`SessionStore`, so a script can keep its session in
memory while a CLI can persist it to a file between runs.

Example::

    client = RegistryClient("http://127.0.0.1:8000", store=FileSessionStore("~/.bloodbank.json"))
    client.login("admin", "S3cure-pass!")
    client.list_donors(blood_group="O-")
"""
from __future__ import annotations

import abc
import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


@dataclass
class SessionContext:
    token: Optional[str] = None
    is_admin: bool = False
    manual_mode: bool = False

    @property
    def authenticated(self) -> bool:
        return bool(self.token)


class SessionStore(abc.ABC):
    """Persistence for a :class:`SessionContext`."""

    @abc.abstractmethod
    def load(self) -> SessionContext:
        ...

    @abc.abstractmethod
    def save(self, ctx: SessionContext) -> None:
        ...

    def clear(self) -> None:
        self.save(SessionContext())


class MemorySessionStore(SessionStore):
    def __init__(self, ctx: Optional[SessionContext] = None):
        self._ctx = ctx or SessionContext()

    def load(self) -> SessionContext:
        return SessionContext(**asdict(self._ctx))

    def save(self, ctx: SessionContext) -> None:
        self._ctx = SessionContext(**asdict(ctx))


class FileSessionStore(SessionStore):
    """JSON file store; a missing or unreadable file is an empty session."""

    def __init__(self, path):
        self.path = os.path.expanduser(str(path))

    def load(self) -> SessionContext:
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return SessionContext()
        except (OSError, ValueError) as exc:
            logger.warning("ignoring unreadable session file %s: %s", self.path, exc)
            return SessionContext()
        return SessionContext(
            token=data.get("token") or None,
            is_admin=bool(data.get("is_admin")),
            manual_mode=bool(data.get("manual_mode")),
        )

    def save(self, ctx: SessionContext) -> None:
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(asdict(ctx), fh)
        os.replace(tmp, self.path)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class RegistryAPIError(Exception):
    def __init__(self, status_code: int, code: str, message: Any):
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


class RegistryClient:
    def __init__(self, base_url: str, store: Optional[SessionStore] = None,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.store = store or MemorySessionStore()
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def context(self) -> SessionContext:
        return self.store.load()

    # -- transport ----------------------------------------------------
    def _request(self, method: str, path: str, *, auth: bool = True, **kwargs) -> Any:
        ctx = self.store.load()
        headers = kwargs.pop("headers", {})
        if auth and ctx.token:
            headers["Authorization"] = f"Bearer {ctx.token}"
        resp = self.session.request(method, f"{self.base_url}{path}", headers=headers,
                                    timeout=self.timeout, **kwargs)
        if resp.status_code == 401 and auth and ctx.token:
            # expired or revoked; keep manual mode so the UI can re-prompt
            logger.info("token rejected, clearing session")
            self.store.save(SessionContext(manual_mode=ctx.manual_mode))
        if resp.status_code >= 400:
            raise self._error(resp)
        if not resp.content:
            return None
        return resp.json()

    @staticmethod
    def _error(resp) -> RegistryAPIError:
        try:
            err = resp.json().get("error") or {}
        except ValueError:
            err = {}
        return RegistryAPIError(resp.status_code, err.get("code", "http_error"), err.get("message", resp.reason))

    def _start_session(self, data: Dict[str, Any], manual_mode: bool = False) -> SessionContext:
        ctx = SessionContext(token=data["token"], is_admin=bool(data.get("isAdmin")), manual_mode=manual_mode)
        self.store.save(ctx)
        return ctx

    # -- sign-in ------------------------------------------------------
    def google_login(self, id_token: str) -> SessionContext:
        return self._start_session(self._request("POST", "/api/auth/google", auth=False, json={"idToken": id_token}))

    def phone_login(self, name: str, phone: str) -> SessionContext:
        data = self._request("POST", "/api/auth/manual", auth=False, json={"name": name, "phone": phone})
        return self._start_session(data, manual_mode=True)

    def login(self, username: str, password: str) -> SessionContext:
        data = self._request("POST", "/api/login", auth=False, json={"username": username, "password": password})
        return self._start_session(data)

    def logout(self) -> None:
        self.store.clear()

    # -- administrators -----------------------------------------------
    def admins_exist(self) -> bool:
        return bool(self._request("GET", "/api/admins/status", auth=False)["exists"])

    def create_first_admin(self, username: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/first-admin", auth=False,
                             json={"username": username, "password": password})

    def grant_admin(self, *, email: Optional[str] = None, phone: Optional[str] = None,
                    name: Optional[str] = None) -> Dict[str, Any]:
        body = {k: v for k, v in (("email", email), ("phone", phone), ("name", name)) if v}
        return self._request("POST", "/api/admins", json=body)

    def create_admin(self, username: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/admins/create", json={"username": username, "password": password})

    # -- donors and institutions --------------------------------------
    def list_donors(self, *, blood_group: Optional[str] = None, query: Optional[str] = None) -> Dict[str, list]:
        params = {k: v for k, v in (("bloodGroup", blood_group), ("q", query)) if v}
        return self._request("GET", "/api/donors", params=params)

    def add_donor(self, institution: str, *, name: str, age: int, blood_group: str,
                  contact: str, address: str) -> Dict[str, Any]:
        return self._request("POST", "/api/donors", json={
            "institution": institution, "name": name, "age": age,
            "bloodGroup": blood_group, "contact": contact, "address": address,
        })

    def delete_donor(self, donor_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/donors/{int(donor_id)}")

    def create_institution(self, name: str) -> Dict[str, Any]:
        return self._request("POST", "/api/institutions", json={"name": name})

    def delete_institution(self, name: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/institutions/{quote(name, safe='')}")

    def delete_donor_at(self, institution: str, index: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/institutions/{quote(institution, safe='')}/donors/{index}")
