#!/usr/bin/env python3
"""Direct launcher for the Finance Tracker dashboard.

Runs Streamlit against ``finance_tracker/dashboard.py`` with the project
root on the import path.
"""

import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()
app_path = project_root / "finance_tracker" / "dashboard.py"

if __name__ == "__main__":
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(project_root), env.get("PYTHONPATH")]))
    subprocess.run([sys.executable, "-m", "streamlit", "run", str(app_path), *sys.argv[1:]], env=env)
