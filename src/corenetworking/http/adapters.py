# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Programmable HttpClient and ClientFactory for tests and offline callers."""

from __future__ import annotations

from collections.abc import Iterable

from ..errors import TransportError
from .client import HttpClient
from .models import HttpRequest, HttpResponse

StubOutcome = HttpResponse | BaseException


class StubHttpClient(HttpClient):
    """
    Deterministic, programmable HttpClient.

    Responses registered per URL with ``add`` win; otherwise the queued
    sequence is consumed in order, repeating its last entry. Exceptions in
    either place are raised instead of returned.
    """

    def __init__(
        self,
        responses: dict[str, StubOutcome] | None = None,
        *,
        sequence: Iterable[StubOutcome] | None = None,
        keep_alive: bool = False,
    ):
        self._responses = dict(responses or {})
        self._sequence = list(sequence or [])
        self.keep_alive = keep_alive
        self.requests: list[HttpRequest] = []
        self.closed = False
        self._sequence_calls = 0

    def add(self, url: str, outcome: StubOutcome) -> None:
        self._responses[url] = outcome

    def request(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if request.url in self._responses:
            outcome = self._responses[request.url]
        elif self._sequence:
            outcome = self._sequence[min(self._sequence_calls, len(self._sequence) - 1)]
            self._sequence_calls += 1
        else:
            raise TransportError("No stubbed response configured", sdk_details={"url": request.url})

        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class StubClientFactory:
    """ClientFactory handing out one shared StubHttpClient and recording how it was asked for."""

    def __init__(self, client: StubHttpClient):
        self.client = client
        self.calls: list[dict] = []

    def __call__(self, settings=None, *, agent=None, keep_alive=False) -> StubHttpClient:  # noqa: ANN001
        self.calls.append({"settings": settings, "agent": agent, "keep_alive": keep_alive})
        if keep_alive:
            self.client.keep_alive = True
        return self.client


__all__ = ["StubClientFactory", "StubHttpClient"]
