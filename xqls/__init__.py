"""xqls - XQuery Language Server for eXist-db."""
