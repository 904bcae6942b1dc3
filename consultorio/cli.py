from __future__ import annotations

import argparse
import getpass

from . import backup
from .config import configure_logging
from .db import configure_engine, init_db
from .formatting import format_date_br
from .holidays import holidays_for_year
from .seed import seed_base
from .services import DomainError, pending_reminders, prepare_whatsapp_reminder
from .store import ClinicStore


def _password(args: argparse.Namespace) -> str:
    return args.password or getpass.getpass("Senha: ")


def _loaded_store() -> ClinicStore:
    store = ClinicStore()
    if not store.load():
        raise SystemExit("Erro de conexão ao carregar dados.")
    return store


def cmd_init(args: argparse.Namespace) -> None:
    init_db()
    seed_base()
    print("Banco inicializado e tipos de consulta padrão carregados.")


def cmd_backup(args: argparse.Namespace) -> None:
    store = _loaded_store()
    path = backup.dump_backup(store, _password(args), args.output_dir)
    print(f"Backup gravado em {path}")


def cmd_restore(args: argparse.Namespace) -> None:
    store = _loaded_store()
    data = backup.load_backup_file(args.file)
    report = backup.restore_backup(store, data, _password(args))
    print(f"Coleções substituídas: {', '.join(report.replaced) or '-'}")
    for collection, count in report.upserts.items():
        print(f"{collection}: {count} gravados, {report.failed.get(collection, 0)} com falha")


def cmd_reminders(args: argparse.Namespace) -> None:
    """
    Lista os lembretes de amanhã ainda não enviados, com o link do WhatsApp.
    O envio continua manual: nada é marcado como enviado aqui.
    """
    store = _loaded_store()
    pending = pending_reminders(store)
    if not pending:
        print("Nenhum lembrete pendente para amanhã.")
        return

    for app in pending:
        try:
            draft = prepare_whatsapp_reminder(store, app.id)
        except DomainError as e:
            print(f"[{app.id}] {app.time} | {app.patient_name} | {e}")
            continue
        print(f"[{app.id}] {app.time} | {app.patient_name} | {draft.link}")


def cmd_holidays(args: argparse.Namespace) -> None:
    for day, name in holidays_for_year(args.year).items():
        print(f"{format_date_br(day)} | {name}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="consultorio", description="CLI administrativa do consultório")
    p.add_argument("--database-url", default=None, help="Sobrescreve DATABASE_URL")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Cria as tabelas e carrega o seed")
    p_init.set_defaults(func=cmd_init)

    p_backup = sub.add_parser("backup", help="Grava o backup completo em JSON")
    p_backup.add_argument("--output-dir", default=".")
    p_backup.add_argument("--password", default=None, help="Senha atual ou mestra (pergunta se omitida)")
    p_backup.set_defaults(func=cmd_backup)

    p_restore = sub.add_parser("restore", help="Restaura um arquivo de backup")
    p_restore.add_argument("file")
    p_restore.add_argument("--password", default=None, help="Senha atual ou mestra (pergunta se omitida)")
    p_restore.set_defaults(func=cmd_restore)

    p_rem = sub.add_parser("reminders", help="Lembretes pendentes de amanhã")
    p_rem.set_defaults(func=cmd_reminders)

    p_hol = sub.add_parser("holidays", help="Feriados nacionais do ano")
    p_hol.add_argument("year", type=int)
    p_hol.set_defaults(func=cmd_holidays)

    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()
    if args.database_url:
        configure_engine(args.database_url)
    init_db()  # garante as tabelas
    try:
        args.func(args)
    except DomainError as e:
        raise SystemExit(str(e)) from e


if __name__ == "__main__":
    main()
