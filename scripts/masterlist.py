# scripts/masterlist.py

import os
import sys

# --- Path Setup ---
# Allows running from a checkout without installing the package
SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

try:
    from masterlist.cli import main
except ImportError as e:
    print(f"FATAL: Failed to import masterlist: {e}", file=sys.stderr)
    print("Ensure src/ is on PYTHONPATH or install with 'pip install -e .'.", file=sys.stderr)
    sys.exit(1)


if __name__ == "__main__":
    sys.exit(main())
