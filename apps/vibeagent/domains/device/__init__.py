from .service import AdbActionExecutor, AdbScreenInspector, best_package_match

__all__ = ["AdbActionExecutor", "AdbScreenInspector", "best_package_match"]
