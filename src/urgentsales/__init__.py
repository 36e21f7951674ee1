"""UrgentSales listing client: property submission wizard and backend collaborators."""

__version__ = "0.1.0"
