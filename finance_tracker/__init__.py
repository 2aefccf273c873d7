"""Top‑level package for the Finance Tracker.

The client keeps two record collections (expenses and incomes) in step
with a remote REST API and derives every view from them locally.  The
primary modules are:

* ``records`` – the shared record model and its DataFrame shape
* ``filters`` / ``sorting`` / ``pagination`` – the list view engines
* ``analytics`` – statistics, breakdowns, trends and the budget calendar
* ``export`` – CSV and PDF reports
* ``api_client`` – the HTTP client, record services and stores
* ``visualization`` – functions that generate Plotly figures
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run finance_tracker/dashboard.py
```
"""

from . import analytics  # noqa: F401  # re-exported for convenience
from . import records  # noqa: F401  # re-exported for convenience
from . import visualization  # noqa: F401  # re-exported for convenience
# Streamlit may not be installed in all environments (e.g. during unit
# testing), so the dashboard is optional.
try:
    from . import dashboard  # type: ignore  # noqa: F401
except ModuleNotFoundError:
    dashboard = None  # type: ignore


__all__ = ["analytics", "records", "visualization", "dashboard"]
