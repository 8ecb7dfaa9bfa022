"""
Declarative Schema Definition for the local record store.

Every table, column and index lives here. Nothing else defines schema.
The schema_engine reads this and converges any database to match.

Adding a column = add one line here. The engine handles the rest.
"""

from collections import OrderedDict

# =============================================================================
# Schema version — bump when you change this file
# =============================================================================
SCHEMA_VERSION = 2

# =============================================================================
# Table Definitions
#
# Format: TABLES[name] = {"columns": [(col_name, col_ddl), ...]}
# =============================================================================

TABLES: dict[str, dict] = OrderedDict()

TABLES["farms"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("owner_name", "TEXT"),
        ("phone", "TEXT"),
        ("district", "TEXT"),
        ("state", "TEXT"),
        ("species", "TEXT NOT NULL"),
        ("culture_system", "TEXT NOT NULL DEFAULT 'pond'"),
        ("area_ha", "REAL"),
        ("pond_count", "INTEGER"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

TABLES["prescriptions"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("farm_id", "TEXT NOT NULL REFERENCES farms(id)"),
        ("vet_name", "TEXT NOT NULL"),
        ("vet_registration", "TEXT"),
        ("antimicrobial", "TEXT NOT NULL"),
        ("dosage", "TEXT"),
        ("duration_days", "INTEGER"),
        ("issued_on", "TEXT NOT NULL"),
        ("notes", "TEXT"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

TABLES["treatments"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("farm_id", "TEXT NOT NULL REFERENCES farms(id)"),
        ("pond_id", "TEXT"),
        ("antimicrobial", "TEXT NOT NULL"),
        ("drug_class", "TEXT"),
        ("reason", "TEXT"),
        ("route", "TEXT NOT NULL DEFAULT 'feed'"),
        ("dose", "REAL"),
        ("dose_unit", "TEXT"),
        ("quantity_g", "REAL"),
        ("start_date", "TEXT NOT NULL"),
        ("end_date", "TEXT NOT NULL"),
        ("withdrawal_days", "INTEGER NOT NULL"),
        ("prescription_id", "TEXT REFERENCES prescriptions(id)"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

TABLES["lab_results"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("farm_id", "TEXT NOT NULL REFERENCES farms(id)"),
        ("sample_id", "TEXT"),
        ("sample_type", "TEXT NOT NULL DEFAULT 'tissue'"),
        ("test_type", "TEXT NOT NULL DEFAULT 'residue'"),
        ("analyte", "TEXT NOT NULL"),
        ("value", "REAL"),
        ("unit", "TEXT"),
        ("limit_value", "REAL"),
        ("outcome", "TEXT NOT NULL DEFAULT 'pending'"),
        ("sampled_on", "TEXT NOT NULL"),
        ("reported_on", "TEXT"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# =============================================================================
# Index Definitions
#
# Format: (index_name, table_name, column_expression)
# =============================================================================

INDEXES: list[tuple[str, str, str]] = [
    ("idx_treatments_farm", "treatments", "farm_id"),
    ("idx_treatments_end_date", "treatments", "end_date"),
    ("idx_prescriptions_farm", "prescriptions", "farm_id"),
    ("idx_lab_results_farm", "lab_results", "farm_id"),
]
