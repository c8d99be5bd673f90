import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

# Must load dotenv before importing settings
from dotenv import load_dotenv  # noqa: E402
load_dotenv()

from arch_search.seeder.cli import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
