import sys
import textwrap
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(scope="session")
def schema_tool_script(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """A stand-in for the external schema tool.

    ``load`` and ``load_indexes`` execute the SQL statements in the given file
    against the SQLite database named by the URL; every call is appended to
    ``calls.log`` next to the script.
    """

    script_dir = tmp_path_factory.mktemp("schema-tool")
    script = script_dir / "schema_tool.py"
    script.write_text(
        textwrap.dedent(
            """
            import sqlite3
            import sys
            from pathlib import Path

            action, url = sys.argv[1], sys.argv[2]
            log = Path(__file__).with_name("calls.log")
            with log.open("a", encoding="utf-8") as fh:
                fh.write(" ".join([action, url]) + "\\n")
            if action == "fail":
                print("schema tool exploded")
                sys.exit(3)
            db_path = url.split("///", 1)[1]
            if action in ("load", "load_indexes"):
                sql = Path(sys.argv[3]).read_text(encoding="utf-8")
                with sqlite3.connect(db_path) as conn:
                    conn.executescript(sql)
                print(f"{action}: applied {Path(sys.argv[3]).stat().st_size} bytes")
            elif action == "reset_db_sequences":
                print("sequences reset")
            else:
                print(f"unknown action {action}")
                sys.exit(2)
            """
        ),
        encoding="utf-8",
    )
    return script
