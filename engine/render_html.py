import html
from typing import Any

from lib import config

APP_TITLE = "AMU Monitoring — Prototype"
STORAGE_NOTE = "Offline-ready • Data stored locally"
FOOTER_TEXT = (
    "Prototype — not for production. Use this as a UI + data-capture template "
    "for an AMU monitoring system."
)

# (key, href, label)
NAV: list[tuple[str, str, str]] = [
    ("dashboard", "/", "Dashboard"),
    ("farms", "/farms", "Farms"),
    ("treatments", "/treatments", "Treatments"),
    ("prescriptions", "/prescriptions", "Prescriptions"),
    ("lab-results", "/lab-results", "Lab results"),
    ("withdrawal", "/withdrawal", "Withdrawal calculator"),
]

CSS = """
:root{--bg:#071026;--card:#0c1a33;--muted:#8fa3bf;--text:#e9f0f7;--accent:#00a3ff;--bad:#ff6b6b;--ok:#2ecc71;--border:rgba(255,255,255,.08);--warn:#f5c542}
html,body{margin:0;padding:0;color:var(--text);font-family:Inter,ui-sans-serif,system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial,sans-serif}
body{background:linear-gradient(180deg,#071026 0%,#061428 100%);min-height:100vh}
a{color:var(--accent);text-decoration:none}
a:hover{text-decoration:underline}
header{display:flex;align-items:center;justify-content:space-between;border-bottom:1px solid var(--border);padding:16px 20px;flex-wrap:wrap;gap:10px}
header .brand{display:flex;align-items:center;gap:12px}
header h1{font-size:18px;font-weight:600;margin:0}
.muted{color:var(--muted);font-size:13px}
nav{display:flex;gap:6px;flex-wrap:wrap;padding:10px 20px;border-bottom:1px solid var(--border)}
nav a{padding:6px 12px;border-radius:999px;color:var(--muted);font-size:13px}
nav a.active{background:rgba(0,163,255,.15);color:var(--text)}
main{max-width:1200px;margin:0 auto;padding:20px}
footer{padding:20px;text-align:center}
.grid{display:grid;grid-template-columns:repeat(12,1fr);gap:16px}
.col{grid-column:span 12}
@media(min-width:980px){.col-6{grid-column:span 6}.col-4{grid-column:span 4}.col-3{grid-column:span 3}}
.card{background:var(--card);border:1px solid var(--border);border-radius:14px;padding:18px}
.card h2{margin:0 0 12px 0;font-size:15px;font-weight:600}
.metric{font-size:34px;font-weight:700;color:var(--accent);margin:6px 0 2px 0}
.metric.bad{color:var(--bad)}
.better{color:var(--ok)}.worse{color:var(--bad)}
table{width:100%;border-collapse:collapse;font-size:13px}
th,td{text-align:left;padding:8px 6px;border-top:1px solid var(--border);vertical-align:top}
th{color:var(--muted);font-weight:500;border-top:none}
.badge{display:inline-block;border:1px solid var(--border);border-radius:999px;padding:2px 8px;font-size:11px;color:var(--muted)}
.badge.bad{border-color:rgba(255,107,107,.5);color:#ffb3b3}
.badge.ok{border-color:rgba(46,204,113,.5);color:#9be7b9}
.badge.warn{border-color:rgba(245,197,66,.6);color:var(--warn)}
form.entry{display:grid;grid-template-columns:repeat(auto-fill,minmax(220px,1fr));gap:12px;align-items:end}
label{display:flex;flex-direction:column;gap:4px;font-size:12px;color:var(--muted)}
input,select,textarea{background:#0a1428;border:1px solid var(--border);color:var(--text);border-radius:8px;padding:8px;font-size:13px}
button{background:var(--accent);border:none;color:#fff;border-radius:8px;padding:9px 14px;font-size:13px;cursor:pointer}
button.link{background:transparent;border:1px solid var(--border);color:var(--muted);padding:4px 8px;font-size:12px}
.errors{border:1px solid rgba(255,107,107,.5);border-radius:10px;padding:10px 14px;margin-bottom:14px;color:#ffb3b3;font-size:13px}
.result{font-size:15px;line-height:1.7}
"""

LOGO_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="36" height="36" viewBox="0 0 24 24">'
    '<rect width="24" height="24" rx="5" fill="#00a3ff" />'
    '<path d="M6 12c1.333-2 4-4 6-4s4.667 2 6 4c-1.333 2-4 4-6 4s-4.667-2-6-4z" '
    'fill="white" opacity="0.95" /></svg>'
)


def _h(s: Any) -> str:
    return html.escape("" if s is None else str(s))


# =============================================================================
# SHELL
# =============================================================================


def render_page(title: str, active: str, body: str) -> str:
    """Wrap *body* in the header / navigation / footer shell."""
    nav = "".join(
        f"<a href='{href}' class='{'active' if key == active else ''}'>{_h(label)}</a>"
        for key, href, label in NAV
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{_h(title)} · AMU Monitoring</title>
<style>{CSS}</style>
</head>
<body>
<header>
  <div class="brand">{LOGO_SVG}<h1>{_h(APP_TITLE)}</h1><span class="muted">{_h(config.REGION_LABEL)}</span></div>
  <div class="muted">{_h(STORAGE_NOTE)}</div>
</header>
<nav>{nav}</nav>
<main>
{body}
</main>
<footer class="muted">{_h(FOOTER_TEXT)}</footer>
</body>
</html>
"""


# =============================================================================
# CHARTS
# =============================================================================


def render_bar_chart(
    series: list[dict[str, Any]],
    *,
    width: int = 560,
    height: int = 280,
    color: str = "#00a3ff",
) -> str:
    """Inline SVG bar chart. *series* is [{label, value}]."""
    if not series or all(not p["value"] for p in series):
        return "<p class='muted'>No data yet.</p>"

    pad_left, pad_right, pad_top, pad_bottom = 36, 8, 10, 46
    plot_w = width - pad_left - pad_right
    plot_h = height - pad_top - pad_bottom
    max_value = max(p["value"] for p in series)
    # whole-number ticks, at most 5 gridlines
    step = max(1, -(-max_value // 4))
    top = step * 4

    parts = [
        f"<svg xmlns='http://www.w3.org/2000/svg' viewBox='0 0 {width} {height}' "
        f"width='100%' role='img' aria-label='bar chart'>"
    ]
    for i in range(5):
        tick = step * i
        y = pad_top + plot_h - plot_h * tick / top
        parts.append(
            f"<line x1='{pad_left}' x2='{width - pad_right}' y1='{y:.1f}' y2='{y:.1f}' "
            "stroke='rgba(128,128,128,.25)' stroke-dasharray='3 3'/>"
            f"<text x='{pad_left - 6}' y='{y + 4:.1f}' text-anchor='end' "
            f"font-size='11' fill='#8fa3bf'>{tick}</text>"
        )

    slot = plot_w / len(series)
    bar_w = max(4.0, slot * 0.6)
    for i, point in enumerate(series):
        value = point["value"]
        bar_h = plot_h * value / top
        x = pad_left + slot * i + (slot - bar_w) / 2
        y = pad_top + plot_h - bar_h
        label = str(point["label"])
        short = label if len(label) <= 12 else label[:11] + "…"
        parts.append(
            f"<rect x='{x:.1f}' y='{y:.1f}' width='{bar_w:.1f}' height='{bar_h:.1f}' "
            f"rx='4' fill='{color}'><title>{_h(label)}: {value}</title></rect>"
            f"<text x='{x + bar_w / 2:.1f}' y='{height - pad_bottom + 16}' text-anchor='middle' "
            f"font-size='11' fill='#8fa3bf'>{_h(short)}</text>"
        )
    parts.append("</svg>")
    return "".join(parts)


# =============================================================================
# DASHBOARD
# =============================================================================


def _metric_card(title: str, value: Any, note: str = "", bad: bool = False) -> str:
    cls = "metric bad" if bad else "metric"
    return (
        f"<div class='col col-3'><div class='card'><h2>{_h(title)}</h2>"
        f"<p class='{cls}'>{_h(value)}</p><p class='muted'>{note}</p></div></div>"
    )


def _change_note(pct: float | None) -> str:
    if pct is None:
        return "No treatments last month"
    if pct > 0:
        return f"<span class='worse'>+{pct:g}%</span> from last month"
    if pct < 0:
        return f"<span class='better'>{pct:g}%</span> from last month"
    return "No change from last month"


def render_dashboard(stats: dict[str, Any], farm_names: dict[str, str]) -> str:
    counts = stats["counts"]
    cards = [
        _metric_card("Farms registered", counts["farms"]),
        _metric_card(
            "Treatments this month",
            stats["treatments_this_month"],
            _change_note(stats["month_change_pct"]),
        ),
        _metric_card(
            "Active withdrawals",
            stats["active_withdrawals"],
            "Batches not yet clear to harvest",
        ),
        _metric_card(
            "Banned substance events",
            stats["flagged_treatments"],
            f"{stats['failed_lab_results']} failed lab result(s)",
            bad=bool(stats["flagged_treatments"] or stats["failed_lab_results"]),
        ),
    ]

    rows = []
    for t in stats["upcoming_clearances"]:
        rows.append(
            "<tr>"
            f"<td>{_h(farm_names.get(t['farm_id'], t['farm_id']))}</td>"
            f"<td>{_h(t['antimicrobial'])}</td>"
            f"<td>{_h(t['end_date'])}</td>"
            f"<td>{_h(t['clearance_date'])}</td>"
            f"<td>{t['days_remaining']}</td>"
            "</tr>"
        )
    upcoming = (
        "<table><tr><th>Farm</th><th>Antimicrobial</th><th>Treatment end</th>"
        "<th>Clearance</th><th>Days left</th></tr>" + "".join(rows) + "</table>"
        if rows
        else "<p class='muted'>No active withdrawal periods.</p>"
    )

    return f"""
<div class="grid">
  {''.join(cards)}
  <div class="col col-6"><div class="card"><h2>Antimicrobial use by drug</h2>
    {render_bar_chart(stats['usage_by_antimicrobial'])}
    <p class="muted">Treatment events per antimicrobial · as of {_h(stats['as_of'])}</p></div></div>
  <div class="col col-6"><div class="card"><h2>Treatment events by month</h2>
    {render_bar_chart(stats['usage_by_month'], color='#58a6ff')}
    <p class="muted">By treatment start date</p></div></div>
  <div class="col"><div class="card"><h2>Upcoming clearances</h2>{upcoming}</div></div>
</div>
"""


# =============================================================================
# FORMS
# =============================================================================

# (name, label, type, required, options)
FormField = tuple[str, str, str, bool, list[tuple[str, str]] | None]

_CULTURE = [("pond", "Pond"), ("cage", "Cage"), ("ras", "RAS"), ("biofloc", "Biofloc"),
            ("raceway", "Raceway")]
_ROUTES = [("feed", "In feed"), ("bath", "Bath"), ("water", "In water"),
           ("injection", "Injection")]
_SAMPLES = [("tissue", "Tissue"), ("water", "Water"), ("sediment", "Sediment"), ("feed", "Feed")]
_TESTS = [("residue", "Residue"), ("pathogen", "Pathogen"), ("ast", "Susceptibility (AST)")]
_OUTCOMES = [("", "Derive from value / limit"), ("pass", "Pass"), ("fail", "Fail"),
             ("pending", "Pending")]

FORM_FIELDS: dict[str, list[FormField]] = {
    "farms": [
        ("name", "Farm name", "text", True, None),
        ("owner_name", "Owner", "text", False, None),
        ("phone", "Phone", "tel", False, None),
        ("district", "District", "text", False, None),
        ("state", "State", "text", False, None),
        ("species", "Species", "text", True, None),
        ("culture_system", "Culture system", "select", False, _CULTURE),
        ("area_ha", "Area (ha)", "number", False, None),
        ("pond_count", "Ponds", "number", False, None),
    ],
    "treatments": [
        ("farm_id", "Farm", "farm", True, None),
        ("pond_id", "Pond / cage", "text", False, None),
        ("antimicrobial", "Antimicrobial", "drug", True, None),
        ("reason", "Reason / diagnosis", "text", False, None),
        ("route", "Route", "select", False, _ROUTES),
        ("dose", "Dose", "number", False, None),
        ("dose_unit", "Dose unit", "text", False, None),
        ("quantity_g", "Total used (g)", "number", False, None),
        ("start_date", "Start date", "date", True, None),
        ("end_date", "End date", "date", True, None),
        ("withdrawal_days", "Withdrawal days (blank = default)", "number", False, None),
        ("prescription_id", "Prescription", "prescription", False, None),
    ],
    "prescriptions": [
        ("farm_id", "Farm", "farm", True, None),
        ("vet_name", "Veterinarian", "text", True, None),
        ("vet_registration", "Registration no.", "text", False, None),
        ("antimicrobial", "Antimicrobial", "drug", True, None),
        ("dosage", "Dosage", "text", False, None),
        ("duration_days", "Duration (days)", "number", False, None),
        ("issued_on", "Issued on", "date", True, None),
        ("notes", "Notes", "text", False, None),
    ],
    "lab-results": [
        ("farm_id", "Farm", "farm", True, None),
        ("sample_id", "Sample ID", "text", False, None),
        ("sample_type", "Sample type", "select", False, _SAMPLES),
        ("test_type", "Test", "select", False, _TESTS),
        ("analyte", "Analyte", "text", True, None),
        ("value", "Value", "number", False, None),
        ("unit", "Unit", "text", False, None),
        ("limit_value", "Limit (MRL)", "number", False, None),
        ("outcome", "Outcome", "select", False, _OUTCOMES),
        ("sampled_on", "Sampled on", "date", True, None),
        ("reported_on", "Reported on", "date", False, None),
    ],
}

# (column, heading) for the saved-records tables
TABLE_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "farms": [("name", "Farm"), ("owner_name", "Owner"), ("district", "District"),
              ("state", "State"), ("species", "Species"), ("culture_system", "System"),
              ("area_ha", "Area (ha)")],
    "treatments": [("farm_id", "Farm"), ("antimicrobial", "Antimicrobial"),
                   ("route", "Route"), ("start_date", "Start"), ("end_date", "End"),
                   ("withdrawal_days", "Withdrawal"), ("clearance_date", "Clearance"),
                   ("withdrawal_status", "Status")],
    "prescriptions": [("farm_id", "Farm"), ("vet_name", "Veterinarian"),
                      ("antimicrobial", "Antimicrobial"), ("dosage", "Dosage"),
                      ("duration_days", "Days"), ("issued_on", "Issued")],
    "lab-results": [("farm_id", "Farm"), ("sample_id", "Sample"), ("test_type", "Test"),
                    ("analyte", "Analyte"), ("value", "Value"), ("limit_value", "Limit"),
                    ("outcome", "Outcome"), ("sampled_on", "Sampled")],
}


def _select(name: str, options: list[tuple[str, str]], current: Any, required: bool) -> str:
    req = " required" if required else ""
    opts = "".join(
        f"<option value='{_h(v)}'{' selected' if str(current or '') == v else ''}>{_h(t)}</option>"
        for v, t in options
    )
    return f"<select name='{name}'{req}>{opts}</select>"


def _field_html(
    field: FormField,
    values: dict[str, Any],
    farms: dict[str, str],
    prescriptions: list[dict[str, Any]],
) -> str:
    name, label, ftype, required, options = field
    current = values.get(name)
    star = " *" if required else ""
    if ftype == "select":
        control = _select(name, options or [], current, required)
    elif ftype == "farm":
        control = _select(name, [("", "Select farm…")] + list(farms.items()), current, required)
    elif ftype == "prescription":
        rx_options = [("", "None")] + [
            (rx["id"], f"{rx['issued_on']} · {rx['antimicrobial']} · {rx['vet_name']}")
            for rx in prescriptions
        ]
        control = _select(name, rx_options, current, required)
    elif ftype == "drug":
        req = " required" if required else ""
        control = (
            f"<input name='{name}' list='antimicrobials' value='{_h(current)}'{req}>"
        )
    else:
        req = " required" if required else ""
        step = " step='any' min='0'" if ftype == "number" else ""
        control = f"<input type='{ftype}' name='{name}' value='{_h(current)}'{step}{req}>"
    return f"<label>{_h(label)}{star}{control}</label>"


def render_form(
    slug: str,
    values: dict[str, Any],
    errors: list[dict[str, str]],
    farms: dict[str, str],
    prescriptions: list[dict[str, Any]],
    drug_names: list[str],
) -> str:
    error_html = ""
    if errors:
        items = "".join(f"<li><b>{_h(e['field'])}</b>: {_h(e['message'])}</li>" for e in errors)
        error_html = f"<div class='errors'><ul>{items}</ul></div>"
    fields = "".join(_field_html(f, values, farms, prescriptions) for f in FORM_FIELDS[slug])
    datalist = "".join(f"<option value='{_h(n)}'>" for n in drug_names)
    return (
        f"{error_html}<form class='entry' method='post' action='/{slug}'>{fields}"
        f"<datalist id='antimicrobials'>{datalist}</datalist>"
        "<div><button type='submit'>Save</button></div></form>"
    )


def _cell(slug: str, col: str, row: dict[str, Any], farms: dict[str, str]) -> str:
    value = row.get(col)
    if col == "farm_id":
        return _h(farms.get(value, value))
    if col == "withdrawal_status":
        cls = "ok" if row.get("cleared") else "warn"
        extra = "" if row.get("cleared") else f" · {row.get('days_remaining')} d"
        flag = " <span class='badge bad'>banned</span>" if row.get("flagged") else ""
        return f"<span class='badge {cls}'>{_h(value)}{extra}</span>{flag}"
    if col == "outcome":
        cls = {"pass": "ok", "fail": "bad"}.get(value, "warn")
        return f"<span class='badge {cls}'>{_h(value)}</span>"
    return _h(value)


def render_records_table(slug: str, rows: list[dict[str, Any]], farms: dict[str, str]) -> str:
    if not rows:
        return "<p class='muted'>Nothing recorded yet.</p>"
    columns = TABLE_COLUMNS[slug]
    head = "".join(f"<th>{_h(h)}</th>" for _, h in columns) + "<th></th>"
    body = []
    for row in rows:
        cells = "".join(f"<td>{_cell(slug, c, row, farms)}</td>" for c, _ in columns)
        delete = (
            f"<form method='post' action='/{slug}/{_h(row['id'])}/delete'>"
            "<button class='link' type='submit'>Delete</button></form>"
        )
        body.append(f"<tr>{cells}<td>{delete}</td></tr>")
    return f"<table><tr>{head}</tr>{''.join(body)}</table>"


def render_kind_page(
    slug: str,
    label: str,
    rows: list[dict[str, Any]],
    *,
    farms: dict[str, str],
    prescriptions: list[dict[str, Any]],
    drug_names: list[str],
    values: dict[str, Any] | None = None,
    errors: list[dict[str, str]] | None = None,
) -> str:
    form = render_form(slug, values or {}, errors or [], farms, prescriptions, drug_names)
    hint = ""
    if slug != "farms" and not farms:
        hint = "<p class='muted'>Register a farm first.</p>"
    body = f"""
<div class="grid">
  <div class="col"><div class="card"><h2>New {_h(label.lower())} record</h2>{hint}{form}</div></div>
  <div class="col"><div class="card"><h2>{_h(label)} ({len(rows)})</h2>
    {render_records_table(slug, rows, farms)}</div></div>
</div>
"""
    return render_page(label, slug, body)


# =============================================================================
# WITHDRAWAL CALCULATOR
# =============================================================================


def render_withdrawal_page(
    values: dict[str, Any],
    result: dict[str, Any] | None = None,
    error: str | None = None,
) -> str:
    out = "<p class='muted'>Enter a date and period.</p>"
    if error:
        out = f"<div class='errors'>{_h(error)}</div>"
    elif result:
        cls = "ok" if result["cleared"] else "warn"
        out = (
            "<div class='result'>"
            f"Clearance date: <b>{_h(result['clearance_date'])}</b><br>"
            f"Days remaining: <b>{max(result['days_remaining'], 0)}</b><br>"
            f"<span class='badge {cls}'>{_h(result['status'])}</span></div>"
        )
    body = f"""
<div class="grid">
  <div class="col col-6"><div class="card"><h2>Withdrawal period calculator</h2>
    <form class="entry" method="get" action="/withdrawal">
      <label>Treatment end date<input type="date" name="end_date" value="{_h(values.get('end_date'))}" required></label>
      <label>Withdrawal days<input type="number" min="0" step="1" name="withdrawal_days" value="{_h(values.get('withdrawal_days'))}" required></label>
      <div><button type="submit">Calculate</button></div>
    </form></div></div>
  <div class="col col-6"><div class="card"><h2>Result</h2>{out}</div></div>
</div>
"""
    return render_page("Withdrawal calculator", "withdrawal", body)


def render_dashboard_page(stats: dict[str, Any], farm_names: dict[str, str]) -> str:
    return render_page("Dashboard", "dashboard", render_dashboard(stats, farm_names))
