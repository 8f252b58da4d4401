"""
Interactive CLI for the Clinical Records Portal.
Browse the clinical histories visible to the signed-in user.
"""

from datetime import datetime

import pandas as pd

from src.access import build_policy, load_actor
from src.config import MAX_PREVIEW_ROWS, RESTRICTED_ACCESS_MESSAGE
from src.dashboard import build_dashboard, greeting
from src.database import init_engine
from src.errors import PortalError
from src.records import compute_age, get_history_detail, list_history_records

HELP = "Commands: list [term] | open <id> | dashboard | quit"


def records_frame(records) -> pd.DataFrame:
    """Tabular view of assembled history records."""
    rows = []
    for r in records:
        rows.append({
            "historia": r.history_id,
            "paciente": r.person.full_name,
            "documento": r.person.national_id,
            "edad": compute_age(r.person.birth_date) if r.person.birth_date else None,
            "estado": r.status_label,
            "creada": r.created_at.date().isoformat() if r.created_at else None,
        })
    return pd.DataFrame(rows, columns=["historia", "paciente", "documento", "edad", "estado", "creada"])


def print_detail(detail) -> None:
    record = detail.record
    print(f"\n[historia {record.history_id}] {record.person.full_name} ({record.person.national_id})")
    print(f"  Estado: {record.status_label}")
    profile = record.profile
    print(f"  Grupo sanguíneo: {profile.blood_group or '-'}  Ambiente: {profile.residence_environment or '-'}")
    if not detail.visits:
        print("  (sin citas registradas)")
    for visit in detail.visits:
        a = visit.appointment
        when = a.scheduled_at.strftime("%Y-%m-%d %H:%M") if a.scheduled_at else "-"
        print(f"  - {when} {a.status} Dr. {a.clinician_name or '-'} ({a.specialty or '-'})")
        for service in visit.services:
            for d in service.diagnoses:
                print(f"      Dx {d.morbidity_code or ''} {d.description or d.morbidity_name or ''}")
            for t in service.treatments:
                meds = ", ".join(f"{m.name} {m.dose or ''} {m.frequency or ''}".strip() for m in t.medications)
                print(f"      Tx {t.description or ''} {meds}")


def main():
    print("=== Clinical Records Portal: Historias Clínicas ===\n")

    engine = init_engine()

    # ── Login ────────────────────────────────────────────────────────
    try:
        api_key = input("Enter access key (or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if not api_key or api_key.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    try:
        actor = load_actor(engine, api_key)
        policy = build_policy(actor)
    except (PortalError, ValueError) as e:
        print("\n[ERROR] Login failed.")
        print("Details:", e)
        return

    print(f"\n[auth] {greeting(datetime.now().hour)}, {actor.display_name} (role={actor.role})")
    print(f"[auth] Policy: {policy.notes}")
    print(HELP)

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        command, _, arg = line.partition(" ")
        command = command.lower()

        if command in {"quit", "exit"}:
            print("Goodbye.")
            break

        try:
            if command == "list":
                if policy.restricted:
                    print(RESTRICTED_ACCESS_MESSAGE)
                    continue
                df = records_frame(list_history_records(engine, policy, arg))
                if df.empty:
                    print("(no hay historias clínicas)")
                else:
                    print(df.head(MAX_PREVIEW_ROWS).to_string(index=False))
            elif command == "open":
                if not arg.isdigit():
                    print("Usage: open <id>")
                    continue
                print_detail(get_history_detail(engine, policy, int(arg)))
            elif command == "dashboard":
                content = build_dashboard(engine, policy)
                stats = content.get("stats")
                if stats is not None:
                    print(pd.Series(vars(stats)).to_string())
                for key in ("upcoming_appointments", "today_appointments", "pending_requests", "recent_services"):
                    if key in content:
                        print(f"\n[{key}] {len(content[key])}")
            else:
                print(HELP)
        except PortalError as e:
            print(f"\n[ERROR] {e.message}")


if __name__ == "__main__":
    main()
