"""LSP feature implementations for XQuery."""
