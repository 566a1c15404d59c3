import sys
from pathlib import Path

# Ensure `rvis_crawler` is importable when running pytest from a source checkout.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
