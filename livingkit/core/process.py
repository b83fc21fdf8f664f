import logging
import subprocess
from typing import Sequence


logger = logging.getLogger(__name__)


def run_command(args: Sequence[str], *env: str) -> None:
    """Run ``args[0]`` with the remaining arguments, raising on a non-zero exit.

    ``env`` entries use ``KEY=VALUE`` form and replace the inherited environment
    when given.
    """
    if not args:
        raise ValueError("required command to run")
    environ = None
    if env:
        environ = {}
        for value in env:
            key, sep, val = value.partition("=")
            if not sep or not key:
                raise ValueError("environment variable format error, required KEY=VALUE format")
            environ[key] = val

    logger.info(f"run cmd: {list(args)}")
    result = subprocess.run(list(args), env=environ, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    if result.returncode != 0:
        logger.debug(f"cmd output: {result.stdout.decode(errors='replace')}")
        logger.error(f"cmd run failed with retCode: {result.returncode}")
        raise subprocess.CalledProcessError(result.returncode, result.args, output=result.stdout)
