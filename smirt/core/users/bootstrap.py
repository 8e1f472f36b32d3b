from __future__ import annotations

"""
Optional bootstrap source for the user registry.

The source is read at most once per registry load. It is bounded: each HTTP
attempt has a timeout and the number of attempts is capped by config. Any
failure raises BootstrapUnavailable; the registry then falls back to storage.
"""

import json
import os
from typing import Any, Optional
from urllib.parse import urljoin

import requests
from pydantic import ValidationError as PydanticValidationError

from smirt.core.config.models import BootstrapConfig
from smirt.core.errors import BootstrapUnavailable
from smirt.core.users.models import BootstrapPayload


class BootstrapSource:
    def __init__(self, cfg: BootstrapConfig, *, session: Optional[requests.Session] = None, logger=None):
        self.cfg = cfg
        self.session = session
        self.logger = logger

    @property
    def enabled(self) -> bool:
        return bool(self.cfg.url or self.cfg.file)

    def _url(self) -> str:
        if self.cfg.base_url:
            return urljoin(self.cfg.base_url.rstrip("/") + "/", self.cfg.url)
        return self.cfg.url

    def fetch(self) -> BootstrapPayload:
        if not self.enabled:
            raise BootstrapUnavailable("Bootstrap source not configured.")
        if self.cfg.url:
            raw = self._fetch_http()
        else:
            raw = self._read_file()
        try:
            return BootstrapPayload.model_validate(raw)
        except PydanticValidationError as e:
            raise BootstrapUnavailable("Bootstrap payload is malformed.", error=str(e)) from e

    def _fetch_http(self) -> Any:
        url = self._url()
        getter = self.session.get if self.session is not None else requests.get
        last_error = ""
        for attempt in range(1, int(self.cfg.max_attempts) + 1):
            try:
                r = getter(url, timeout=float(self.cfg.timeout_seconds))
            except requests.RequestException as e:
                last_error = f"{type(e).__name__}: {e}"
                if self.logger:
                    self.logger.warning(f"Bootstrap fetch attempt {attempt} failed: {last_error}")
                continue
            if r.status_code != 200:
                last_error = f"HTTP {r.status_code}"
                if self.logger:
                    self.logger.warning(f"Bootstrap fetch attempt {attempt} failed: {last_error}")
                continue
            try:
                return r.json()
            except ValueError as e:
                # a body that is not JSON will not improve on retry
                raise BootstrapUnavailable("Bootstrap response is not JSON.", url=url, error=str(e)) from e
        raise BootstrapUnavailable("Bootstrap source unreachable.", url=url, error=last_error, attempts=int(self.cfg.max_attempts))

    def _read_file(self) -> Any:
        path = self.cfg.file
        if not os.path.exists(path):
            raise BootstrapUnavailable("Bootstrap file missing.", path=path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BootstrapUnavailable("Bootstrap file unreadable.", path=path, error=str(e)) from e
