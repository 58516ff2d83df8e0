"""
Import expenses from a .csv/.xlsx/.xls spreadsheet into a household
Usage: python scripts/import_expenses.py user@example.com expenses.xlsx
"""

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent))

from flask_login import login_user
from app import create_app
from models.users import User
from services.errors import BudgetError
from services.import_service import ExpenseImportService


def import_expenses(email, path):
    app = create_app()

    # Imports are scoped to the signed-in user's household, so run as that user
    with app.test_request_context():
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user or not user.family_id:
            print(f"ERROR: No household found for '{email}'")
            return 1
        login_user(user)

        with open(path, 'rb') as stream:
            try:
                result = ExpenseImportService.import_file(stream, Path(path).name)
            except BudgetError as e:
                print(f"ERROR: {e.message}")
                return 1

    print(f"Imported: {result['success']}")
    print(f"Failed:   {result['failed']}")
    for error in result['errors']:
        print(f"  row {error['row']}: {error['error']}")
    return 0


if __name__ == '__main__':
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(import_expenses(sys.argv[1], sys.argv[2]))
