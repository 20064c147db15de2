from pathlib import Path
import ast

SRC_DIR = Path(__file__).resolve().parents[1] / "src"


def test_public_functions_are_decorated() -> None:
    for py_file in SRC_DIR.rglob("*.py"):
        if py_file.name == "logging.py":
            # functions in this module implement the decorator itself
            # and are excluded from decoration checks
            continue
        tree = ast.parse(py_file.read_text())
        for node in ast.walk(tree):
            if (
                isinstance(node, ast.FunctionDef)
                and not node.name.startswith("_")
            ):
                has_decorator = any(
                    isinstance(d, ast.Name) and d.id == "log_call" or
                    isinstance(d, ast.Attribute) and d.attr == "log_call"
                    for d in node.decorator_list
                )
                assert has_decorator, (
                    f"{py_file}:{node.name} missing @log_call"
                )


def test_log_call_preserves_metadata_and_result(caplog) -> None:
    import logging

    from utils.logging import log_call

    @log_call
    def scaled(value: float, factor: float = 2.0) -> float:
        """Multiply value by factor."""
        return value * factor

    assert scaled.__name__ == "scaled"
    assert scaled.__doc__ == "Multiply value by factor."
    with caplog.at_level(logging.DEBUG, logger=__name__):
        assert scaled(3.0, factor=4.0) == 12.0
    messages = [record.getMessage() for record in caplog.records]
    assert any("Entering" in m and "scaled" in m for m in messages)
    assert any("Exiting" in m for m in messages)
