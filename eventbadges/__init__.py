"""Event badge printing: dynamic field schemas, badge layouts and PDF output."""
