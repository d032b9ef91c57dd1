"""Print the GPA rows and checkpoint tally of a class using the app's DB config.
Run from the repo root:

    python scripts/print_class_report.py <class_id> [YYYY-MM]

This uses the same DB configuration as the app (env vars / .env).
"""

import sys
import traceback

# Ensure we can import app and utils from the parent directory
sys.path.insert(0, ".")

try:
    from app import create_app
    from utils.calendar_utils import parse_month
    from utils.report_service import ReportService
    from utils.report_store import SQLAlchemyReportStore
    from utils.summary_utils import summarize_checkpoints
except Exception:
    print("Failed to import the report engine. Make sure you're running from the repo root.")
    traceback.print_exc()
    sys.exit(1)

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

try:
    class_id = int(sys.argv[1])
    at = parse_month(sys.argv[2]) if len(sys.argv) > 2 else None
except ValueError as e:
    print(f"Invalid arguments: {e}")
    sys.exit(1)

app = create_app()
try:
    with app.app_context():
        service = ReportService(SQLAlchemyReportStore())
        gpas = service.get_trainee_gpas(class_id, at=at)
        if not gpas:
            print(f"Class {class_id} has no active trainees.")
        else:
            print(f"GPA of {len(gpas)} trainees in class {class_id}:\n")
            for row in gpas:
                print(
                    f"  trainee {row.trainee_id:>6}  academic {row.academic_mark:.3f}  "
                    f"discipline {row.disciplinary_point:.2f}  bonus {row.bonus:+.2f}  "
                    f"penalty {row.penalty:+.2f}  gpa {row.gpa:.3f}  {row.level}"
                )
            print(f"\nCheckpoint: {summarize_checkpoints(gpas)}")
except Exception:
    print("Report computation failed:")
    traceback.print_exc()
    sys.exit(2)

print("\nDone.")
