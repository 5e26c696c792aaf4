"""HTTP adapter over the reconciliation pipeline."""
