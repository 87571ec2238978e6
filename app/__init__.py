"""J-REIT building and transaction search service."""
