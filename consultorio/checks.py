"""
Verificações sequenciais pós-login.

Uma lista ordenada de descritores (nome + avaliação) processada por um único
coordenador: só um aviso aberto por vez, e fechar o atual avança para o
próximo que tiver algo a mostrar. Verificações sem conteúdo são puladas.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .records import onboarding_pending
from .services import birthday_patients, pending_reminders, todays_appointments
from .store import ClinicStore

WELCOME = "welcome"
BIRTHDAY = "birthday"
REMINDER = "reminder"
TODAY_APPOINTMENTS = "today_appointments"


@dataclass(frozen=True)
class StartupCheck:
    name: str
    # devolve o conteúdo a exibir, ou None para pular
    evaluate: Callable[[], Any | None]


@dataclass(frozen=True)
class ActiveCheck:
    name: str
    payload: Any


class CheckSequence:
    def __init__(self, checks: Iterable[StartupCheck]) -> None:
        self._checks = list(checks)
        self._position = -1
        self.current: ActiveCheck | None = None

    @property
    def finished(self) -> bool:
        return self.current is None and self._position >= len(self._checks)

    def start(self) -> ActiveCheck | None:
        return self._advance_from(0)

    def dismiss(self) -> ActiveCheck | None:
        """Fecha o aviso atual e avalia o próximo na ordem."""
        if self.current is None:
            return None
        return self._advance_from(self._position + 1)

    def refresh(self) -> ActiveCheck | None:
        """Reavalia o conteúdo do aviso aberto sem avançar."""
        if self.current is not None:
            check = self._checks[self._position]
            self.current = ActiveCheck(check.name, check.evaluate())
        return self.current

    def _advance_from(self, index: int) -> ActiveCheck | None:
        self.current = None
        for pos in range(index, len(self._checks)):
            check = self._checks[pos]
            payload = check.evaluate()
            if payload:
                self._position = pos
                self.current = ActiveCheck(check.name, payload)
                return self.current
        self._position = len(self._checks)
        return None


class StartupChecks:
    """Welcome -> Aniversários -> Lembretes de amanhã -> Consultas de hoje."""

    def __init__(self, store: ClinicStore) -> None:
        self.store = store
        self.welcome_armed = False
        self.sequence: CheckSequence | None = None

    @property
    def current(self) -> ActiveCheck | None:
        return self.sequence.current if self.sequence else None

    def on_login(self, is_master: bool = False) -> None:
        pending = onboarding_pending(self.store)
        self.welcome_armed = not is_master and not all(pending.values())

    def on_data_loaded(self) -> ActiveCheck | None:
        """Reinicia a cadeia (Welcome só se ainda estiver armado)."""
        checks = []
        if self.welcome_armed:
            checks.append(StartupCheck(WELCOME, self._welcome))
        checks += [
            StartupCheck(BIRTHDAY, lambda: birthday_patients(self.store)),
            StartupCheck(REMINDER, lambda: pending_reminders(self.store)),
            StartupCheck(TODAY_APPOINTMENTS, lambda: todays_appointments(self.store)),
        ]
        self.sequence = CheckSequence(checks)
        return self.sequence.start()

    def dismiss(self) -> ActiveCheck | None:
        if self.sequence is None:
            return None
        return self.sequence.dismiss()

    def refresh(self) -> ActiveCheck | None:
        return self.sequence.refresh() if self.sequence else None

    def _welcome(self) -> dict[str, bool] | None:
        # exibido uma única vez por login
        self.welcome_armed = False
        pending = onboarding_pending(self.store)
        return None if all(pending.values()) else pending
