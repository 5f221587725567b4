"""HTTP value types and the per-request response writer."""
