"""Network collaborators: the UrgentSales REST backend and the list-view cache."""
