import csv
import io

TEAM_CSV_COLUMNS = ("team_name", "project_name", "team_description")
TEMPLATE_ROWS = (
    ("Team Alpha", "Smart Recycler", "Sorts household waste with a camera"),
    ("Team Beta", "Queue Buddy", "Virtual queueing for campus events"),
)


def team_csv_template():
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(TEAM_CSV_COLUMNS)
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()


def parse_team_csv(text):
    """Read team rows from CSV text; return (teams, errors).

    ``team_name`` is the only required column. Header names are matched
    case-insensitively. Errors name the 1-based line of the CSV.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        return [], ["CSV file is empty."]

    columns = {
        (name or "").strip().lower(): name for name in reader.fieldnames
    }
    if "team_name" not in columns:
        return [], ["CSV must have a team_name column."]

    def cell(row, column):
        source = columns.get(column)
        value = row.get(source) if source is not None else None
        return value.strip() if isinstance(value, str) else ""

    teams = []
    errors = []
    seen = set()
    for line, row in enumerate(reader, start=2):
        name = cell(row, "team_name")
        if not name:
            if any(isinstance(v, str) and v.strip() for v in row.values()):
                errors.append(f"Line {line}: team_name is required.")
            continue
        if name.lower() in seen:
            errors.append(f"Line {line}: duplicate team name {name!r}.")
            continue
        seen.add(name.lower())
        teams.append(
            {
                "name": name,
                "project_name": cell(row, "project_name") or None,
                "project_description": cell(row, "team_description") or None,
            }
        )
    return teams, errors
