"""
Tests for server-side HTML rendering (engine/render_html.py).
"""

from engine import render_html


def _stats(**overrides):
    stats = {
        "as_of": "2025-03-15",
        "counts": {"farms": 2, "treatments": 3, "prescriptions": 0, "lab-results": 0},
        "active_withdrawals": 1,
        "flagged_treatments": 0,
        "failed_lab_results": 0,
        "treatments_this_month": 3,
        "treatments_last_month": 2,
        "month_change_pct": 50.0,
        "usage_by_antimicrobial": [{"label": "Oxytetracycline", "value": 3}],
        "usage_by_month": [{"label": "2025-02", "value": 2}, {"label": "2025-03", "value": 3}],
        "upcoming_clearances": [
            {
                "farm_id": "farm-1",
                "antimicrobial": "Oxytetracycline",
                "end_date": "2025-03-07",
                "clearance_date": "2025-03-28",
                "days_remaining": 13,
            }
        ],
    }
    stats.update(overrides)
    return stats


class TestShell:
    def test_nav_marks_active(self):
        page = render_html.render_page("Farms", "farms", "<p>x</p>")
        assert "<a href='/farms' class='active'>Farms</a>" in page
        assert "<a href='/' class=''>Dashboard</a>" in page

    def test_title_escaped(self):
        page = render_html.render_page("<script>", "farms", "")
        assert "&lt;script&gt; · AMU Monitoring" in page

    def test_footer_and_storage_note(self):
        page = render_html.render_page("Farms", "farms", "")
        assert render_html.FOOTER_TEXT in page
        assert "Data stored locally" in page


class TestBarChart:
    def test_empty(self):
        assert "No data yet" in render_html.render_bar_chart([])
        assert "No data yet" in render_html.render_bar_chart([{"label": "a", "value": 0}])

    def test_one_bar_per_point(self):
        series = [{"label": "a", "value": 1}, {"label": "b", "value": 5}]
        svg = render_html.render_bar_chart(series)
        assert svg.startswith("<svg")
        assert svg.count("<rect") == 2
        assert "stroke-dasharray" in svg

    def test_long_label_truncated(self):
        svg = render_html.render_bar_chart([{"label": "Sulfadiazine-Trimethoprim", "value": 2}])
        assert "Sulfadiazin…" in svg
        assert "<title>Sulfadiazine-Trimethoprim: 2</title>" in svg

    def test_labels_escaped(self):
        svg = render_html.render_bar_chart([{"label": "<b>", "value": 1}])
        assert "<b>" not in svg


class TestDashboard:
    def test_increase_is_worse(self):
        html = render_html.render_dashboard(_stats(), {"farm-1": "Godavari"})
        assert "<span class='worse'>+50%</span>" in html

    def test_decrease_is_better(self):
        html = render_html.render_dashboard(_stats(month_change_pct=-25.0), {})
        assert "<span class='better'>-25%</span>" in html

    def test_no_previous_month(self):
        html = render_html.render_dashboard(_stats(month_change_pct=None), {})
        assert "No treatments last month" in html

    def test_upcoming_uses_farm_name(self):
        html = render_html.render_dashboard(_stats(), {"farm-1": "Godavari"})
        assert "<td>Godavari</td>" in html
        assert "2025-03-28" in html

    def test_no_upcoming(self):
        html = render_html.render_dashboard(_stats(upcoming_clearances=[]), {})
        assert "No active withdrawal periods" in html

    def test_flags_highlighted(self):
        html = render_html.render_dashboard(_stats(flagged_treatments=1), {})
        assert "metric bad" in html


class TestForms:
    def test_errors_listed(self):
        html = render_html.render_form(
            "farms", {}, [{"field": "name", "message": "required"}], {}, [], []
        )
        assert "<b>name</b>: required" in html

    def test_values_kept(self):
        html = render_html.render_form("farms", {"name": "Coastal"}, [], {}, [], [])
        assert "value='Coastal'" in html

    def test_farm_select(self):
        html = render_html.render_form(
            "treatments", {"farm_id": "farm-1"}, [], {"farm-1": "Godavari"}, [], ["Florfenicol"]
        )
        assert "<option value='farm-1' selected>Godavari</option>" in html
        assert "<option value='Florfenicol'>" in html
        assert "action='/treatments'" in html

    def test_prescription_options(self):
        rx = [{"id": "rx-1", "issued_on": "2025-02-28", "antimicrobial": "Oxytetracycline",
               "vet_name": "Dr. Iyer"}]
        html = render_html.render_form("treatments", {}, [], {}, rx, [])
        assert "2025-02-28 · Oxytetracycline · Dr. Iyer" in html

    def test_every_kind_has_form_and_table(self):
        for slug in ("farms", "treatments", "prescriptions", "lab-results"):
            assert render_html.FORM_FIELDS[slug]
            assert render_html.TABLE_COLUMNS[slug]


class TestTables:
    def test_empty(self):
        assert "Nothing recorded yet" in render_html.render_records_table("farms", [], {})

    def test_delete_form(self):
        rows = [{"id": "farm-1", "name": "Godavari"}]
        html = render_html.render_records_table("farms", rows, {})
        assert "action='/farms/farm-1/delete'" in html

    def test_treatment_status_badge(self):
        row = {
            "id": "trt-1",
            "farm_id": "farm-1",
            "withdrawal_status": "Withdrawal active",
            "cleared": False,
            "days_remaining": 4,
            "flagged": True,
        }
        html = render_html.render_records_table("treatments", [row], {"farm-1": "Godavari"})
        assert "badge warn" in html
        assert "4 d" in html
        assert "banned" in html
        assert "<td>Godavari</td>" in html

    def test_kind_page_hint_without_farms(self):
        html = render_html.render_kind_page(
            "treatments", "Treatments", [], farms={}, prescriptions=[], drug_names=[]
        )
        assert "Register a farm first" in html


class TestWithdrawalPage:
    def test_blank(self):
        html = render_html.render_withdrawal_page({})
        assert "Enter a date and period" in html

    def test_result(self):
        result = {"clearance_date": "2025-03-28", "days_remaining": 13, "cleared": False,
                  "status": "Withdrawal active"}
        html = render_html.render_withdrawal_page({"end_date": "2025-03-07"}, result=result)
        assert "<b>2025-03-28</b>" in html
        assert "<b>13</b>" in html
        assert "value=\"2025-03-07\"" in html

    def test_past_clearance_shows_zero(self):
        result = {"clearance_date": "2025-01-01", "days_remaining": -20, "cleared": True,
                  "status": "Clear to harvest"}
        html = render_html.render_withdrawal_page({}, result=result)
        assert "<b>0</b>" in html
        assert "badge ok" in html

    def test_error(self):
        html = render_html.render_withdrawal_page({}, error="bad date")
        assert "bad date" in html
