from xqls.parser.scan import ScanResult, find_definition, scan, scan_imports

__all__ = ["ScanResult", "find_definition", "scan", "scan_imports"]
