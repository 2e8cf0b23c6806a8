import os
import sys

ROOT = os.path.dirname(__file__)
SRC = os.path.join(ROOT, "src")
EXAMPLES_DIR = os.path.join(ROOT, "examples")

for p in (SRC, EXAMPLES_DIR):
    if p not in sys.path:
        sys.path.insert(0, p)

# never issue Secure cookies while testing, whatever the host environment says
os.environ.setdefault("FASTAPI_AUTHFLOW_ENV", "test")
