"""Mini README: Core package initialiser for the FeeLedger bookkeeping service.

FeeLedger records student fines and fees, departmental expenditures and
payment categories, and serves aggregated financial reports over a JSON API.
Only the logging helper is re-exported here so importing the package stays
cheap; the web application lives in ``feeledger.interface``.
"""

from .logging_utils import get_logger

__version__ = "1.0.0"

__all__ = ["get_logger", "__version__"]
