#!/usr/bin/env python3
"""
AMU Monitor CLI - local records from the terminal.
"""

import sys
from datetime import date

from lib import config
from lib.capture import farm_names, list_records
from lib.dashboard import build_dashboard
from lib.export import read_snapshot, write_snapshot
from lib.observability import configure_logging
from lib.records import KINDS
from lib.state_store import get_store
from lib.withdrawal import compute_withdrawal


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [
            max(len(str(row[i])) for row in [headers] + rows)
            for i in range(len(headers))
        ]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def status_color(cleared: bool) -> str:
    """Return ANSI color code for a withdrawal state."""
    return "\033[0m" if cleared else "\033[93m"  # Default / Yellow


def cmd_serve(args):
    """Run the local web UI: serve [--host HOST] [--port PORT]."""
    from api.server import main as serve

    host, port = config.HOST, config.PORT
    it = iter(args)
    try:
        for arg in it:
            if arg == "--host":
                host = next(it, host)
            elif arg == "--port":
                port = int(next(it, port))
    except ValueError as e:
        print(f"Error: {e}")
        print("Usage: serve [--host HOST] [--port PORT]")
        sys.exit(1)
    print(f"Serving AMU Monitor on http://{host}:{port}")
    serve(host=host, port=port)


def cmd_stats(args):
    """Show dashboard figures."""
    store = get_store()
    stats = build_dashboard(store)

    print_header(f"AMU DASHBOARD ({stats['as_of']})")
    for slug, n in stats["counts"].items():
        print(f"  {KINDS[slug].label:<22} {n}")
    print(f"  {'Active withdrawals':<22} {stats['active_withdrawals']}")
    print(f"  {'Banned-drug treatments':<22} {stats['flagged_treatments']}")
    print(f"  {'Failed lab results':<22} {stats['failed_lab_results']}")

    pct = stats["month_change_pct"]
    change = "n/a" if pct is None else f"{pct:+.1f}%"
    print(
        f"  {'Treatments this month':<22} {stats['treatments_this_month']}"
        f" (last month {stats['treatments_last_month']}, {change})"
    )

    if stats["usage_by_antimicrobial"]:
        print("\nUsage by antimicrobial:")
        for point in stats["usage_by_antimicrobial"]:
            print(f"  {point['label']:<28} {'█' * point['value']} {point['value']}")

    if stats["upcoming_clearances"]:
        names = farm_names(store)
        print("\nUpcoming clearances:")
        for t in stats["upcoming_clearances"]:
            print(
                f"  {t['clearance_date']}  {names.get(t['farm_id'], t['farm_id'])}"
                f" · {t['antimicrobial']} ({t['days_remaining']} d)"
            )


def cmd_farms(args):
    """List registered farms."""
    farms = get_store().list("farms")
    print_header("FARMS")
    if not farms:
        print("No farms registered.")
        return
    rows = [
        [f["id"], f["name"], f.get("district") or "-", f.get("species") or "-",
         f.get("culture_system") or "-"]
        for f in farms
    ]
    print_table(["ID", "Name", "District", "Species", "System"], rows)


def cmd_treatments(args):
    """List treatments with withdrawal status. Optional farm ID filter."""
    store = get_store()
    farm_id = args[0] if args else None
    treatments = list_records(store, "treatments", farm_id=farm_id)
    names = farm_names(store)

    print_header("TREATMENTS")
    if not treatments:
        print("No treatments recorded.")
        return
    rows = []
    for t in treatments:
        flag = " ⚠ banned" if t["flagged"] else ""
        rows.append(
            [
                names.get(t["farm_id"], t["farm_id"]),
                t["antimicrobial"],
                t["end_date"],
                t["clearance_date"],
                f"{t['withdrawal_status']}{flag}",
            ]
        )
    print_table(["Farm", "Antimicrobial", "Ended", "Clears", "Status"], rows)


def cmd_withdrawal(args):
    """Compute a clearance date: withdrawal <end-date> <days> [today]."""
    if len(args) < 2:
        print("Usage: withdrawal <end-date YYYY-MM-DD> <days> [today YYYY-MM-DD]")
        return
    try:
        today = date.fromisoformat(args[2]) if len(args) > 2 else None
        result = compute_withdrawal(args[0], int(args[1]), today)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_header("WITHDRAWAL PERIOD")
    print(f"  Treatment ended:  {result.treatment_end_date.isoformat()}")
    print(f"  Withdrawal days:  {result.withdrawal_days}")
    print(f"  Clearance date:   {result.clearance_date.isoformat()}")
    print(f"  Days remaining:   {max(result.days_remaining, 0)}")
    print(f"  Status:           {status_color(result.cleared)}{result.status}\033[0m")


def cmd_export(args):
    """Write a JSON snapshot of all data."""
    if not args:
        print("Usage: export <path>")
        return
    path = write_snapshot(get_store(), args[0])
    print(f"✓ Exported to {path}")


def cmd_import(args):
    """Replace local data with a JSON snapshot."""
    if not args:
        print("Usage: import <path>")
        return
    try:
        counts = read_snapshot(get_store(), args[0])
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    print("✓ Imported " + ", ".join(f"{slug}={n}" for slug, n in counts.items()))


def cmd_reset(args):
    """Delete all local data. Pass --yes to skip the prompt."""
    if "--yes" not in args:
        answer = input("Delete ALL local data? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted.")
            return
    get_store().clear()
    print("✓ All local data deleted")


def cmd_help(args):
    """Show help."""
    print("""
AMU MONITOR CLI
═══════════════

COMMANDS:
  serve [--host H] [--port P]   Run the local web UI
  stats                         Dashboard figures
  farms                         List farms
  treatments [farm-id]          Treatments with withdrawal status
  withdrawal <end> <days> [today]
                                Compute a clearance date
  export <path>                 Write a JSON snapshot
  import <path>                 Replace data from a JSON snapshot
  reset [--yes]                 Delete all local data
  help                          Show this help
""")


COMMANDS = {
    "serve": cmd_serve,
    "stats": cmd_stats,
    "s": cmd_stats,
    "farms": cmd_farms,
    "f": cmd_farms,
    "treatments": cmd_treatments,
    "t": cmd_treatments,
    "withdrawal": cmd_withdrawal,
    "w": cmd_withdrawal,
    "export": cmd_export,
    "import": cmd_import,
    "reset": cmd_reset,
    "help": cmd_help,
    "h": cmd_help,
}


def main():
    """Main entry point."""
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)

    if len(sys.argv) < 2:
        cmd_help([])
        return

    cmd = sys.argv[1]
    args = sys.argv[2:]

    if cmd in COMMANDS:
        COMMANDS[cmd](args)
    else:
        print(f"Unknown command: {cmd}")
        print("Run 'help' for available commands.")


if __name__ == "__main__":
    main()
