from __future__ import annotations

from consultorio import records, services
from consultorio.checks import (
    BIRTHDAY,
    REMINDER,
    TODAY_APPOINTMENTS,
    WELCOME,
    CheckSequence,
    StartupCheck,
    StartupChecks,
)


def test_sequence_skips_empty_checks_and_shows_one_at_a_time():
    seen = []

    def probe(name, payload):
        def evaluate():
            seen.append(name)
            return payload
        return StartupCheck(name, evaluate)

    seq = CheckSequence([probe("a", None), probe("b", ["x"]), probe("c", []), probe("d", {"k": 1})])

    assert seq.start().name == "b"
    assert seen == ["a", "b"]
    assert seq.dismiss().name == "d"
    assert seen == ["a", "b", "c", "d"]
    assert seq.dismiss() is None
    assert seq.finished


def test_dismiss_without_open_check_is_noop():
    seq = CheckSequence([StartupCheck("a", lambda: None)])
    assert seq.start() is None
    assert seq.dismiss() is None
    assert seq.finished


def test_refresh_reevaluates_open_check():
    items = ["x"]
    seq = CheckSequence([StartupCheck("a", lambda: list(items))])
    seq.start()
    items.append("y")
    assert seq.refresh().payload == ["x", "y"]


def test_full_chain_order(store, ana):
    # aniversariante hoje, consulta amanhã sem lembrete e consulta hoje
    records.update_patient(store, ana.id, {"date_of_birth": "1990-06-10"})
    services.create_appointment(store, ana.id, "2024-06-11", "10:00", "ct-1")
    services.create_appointment(store, ana.id, "2024-06-10", "15:00", "ct-1")

    checks = StartupChecks(store)
    checks.on_login(is_master=False)
    order = [checks.on_data_loaded().name]
    while checks.dismiss() is not None:
        order.append(checks.current.name)

    assert order == [WELCOME, BIRTHDAY, REMINDER, TODAY_APPOINTMENTS]
    assert checks.current is None


def test_master_session_skips_welcome(store, ana):
    services.create_appointment(store, ana.id, "2024-06-10", "15:00", "ct-1")
    checks = StartupChecks(store)
    checks.on_login(is_master=True)
    assert checks.on_data_loaded().name == TODAY_APPOINTMENTS


def test_welcome_not_armed_once_onboarding_done(store):
    records.change_password(store, "2577", "9999", "9999")
    records.set_profile_image(store, "data:image/png;base64,AAAA")

    checks = StartupChecks(store)
    checks.on_login()
    assert checks.welcome_armed is False
    assert checks.on_data_loaded() is None


def test_restart_after_reload_begins_at_birthday(store, ana):
    records.update_patient(store, ana.id, {"date_of_birth": "1985-06-10"})
    checks = StartupChecks(store)
    checks.on_login()
    assert checks.on_data_loaded().name == WELCOME

    # recarga no meio da cadeia: Welcome já foi exibido
    current = checks.on_data_loaded()
    assert current.name == BIRTHDAY
    assert [p.name for p in current.payload] == ["Ana"]


def test_marking_from_daily_check_empties_reminder_payload(store, ana):
    app = services.create_appointment(store, ana.id, "2024-06-11", "10:00", "ct-1").record
    checks = StartupChecks(store)
    checks.on_login(is_master=True)
    assert checks.on_data_loaded().name == REMINDER

    services.mark_reminder_sent(store, app.id, services.ReminderSource.DAILY_CHECK)
    assert checks.refresh().payload == []
