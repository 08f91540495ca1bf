"""Subprocess worker that runs one uBASIC program.

Executed as `python -m backend.ubasic._subprocess_worker`. It reads a single
JSON object from stdin with shape {"code": str, "memory": {addr: value},
"settings": {...}}, runs the program in-process with `ProgramRunner`, and
writes the run result dict as JSON to stdout.

The parent process enforces the wall-clock timeout and resource caps; this
worker only applies the step/time/output caps from `settings`.
"""

import json
import sys
from typing import Any, Dict

from backend.ubasic.runner import ProgramRunner


def run_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Run the program described by a decoded request payload."""
    code = payload.get("code", "")
    memory = {int(k): int(v) for k, v in (payload.get("memory") or {}).items()}
    settings = dict(payload.get("settings") or {})
    # never recurse into another subprocess
    settings.pop("use_subprocess", None)
    result = ProgramRunner().run(code, memory=memory, settings=settings)
    result["memory"] = {str(k): v for k, v in result["memory"].items()}
    return result


def main() -> None:
    raw = sys.stdin.read()
    try:
        payload = json.loads(raw)
    except ValueError as e:
        # Communicate payload decoding errors via JSON to the parent process
        print(json.dumps({"output": "", "errors": {"code": "BAD_PAYLOAD", "message": str(e)}}))
        sys.exit(1)

    print(json.dumps(run_payload(payload)))


if __name__ == "__main__":
    main()
