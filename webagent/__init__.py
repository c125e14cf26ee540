import os
from pathlib import Path

ENV_FILE_VAR = "WEBAGENT_ENV_FILE"


def _parse_env_line(line: str):
	s = line.strip()
	if not s or s.startswith("#") or "=" not in s:
		return None
	if s.startswith("export "):
		s = s[len("export "):]
	key, val = (part.strip() for part in s.split("=", 1))
	if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
		val = val[1:-1]
	return (key, val) if key else None


def load_env_file(path=None) -> int:
	"""Export KEY=VALUE pairs from the project env file; returns how many were set.

	The file defaults to `.env` and can be moved with WEBAGENT_ENV_FILE.
	Must run before webagent.config is imported, since config reads the
	environment once at import time.
	"""
	env_path = Path(path or os.getenv(ENV_FILE_VAR) or ".env")
	try:
		lines = env_path.read_text(encoding="utf-8").splitlines()
	except OSError:
		return 0
	loaded = 0
	for line in lines:
		pair = _parse_env_line(line)
		# Values already exported win over the file
		if pair and pair[0] not in os.environ:
			os.environ[pair[0]] = pair[1]
			loaded += 1
	return loaded


# Keep pytest runs offline: never pick up a developer's env file
if not os.getenv("PYTEST_CURRENT_TEST"):
	load_env_file()
