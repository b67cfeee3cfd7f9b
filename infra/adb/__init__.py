from infra.adb.client import AdbClient, adb_text_escape, extract_hierarchy

__all__ = ["AdbClient", "adb_text_escape", "extract_hierarchy"]
