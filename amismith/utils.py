import re
import time
import subprocess
from . import create_logger
from .exceptions import LocalCommandFailedException


logger = create_logger(__name__)


def printsection(title):
    logger.info("")
    logger.info("> %s" % title)
    logger.info("=" * 60)


def poll_until(predicate, interval, max_attempts=None, description='condition'):
    """Call predicate until it returns a truthy value and return that value.
    Sleeps interval seconds between attempts. Returns None once max_attempts
    calls have all returned a falsy value (max_attempts=None means no bound).
    Exceptions raised by predicate are not caught, which lets it abort polling.
    """
    attempt = 0
    while True:
        attempt += 1
        res = predicate()
        if res:
            logger.debug("%s met at attempt %d" % (description, attempt))
            return res
        if max_attempts is not None and attempt >= max_attempts:
            logger.debug("%s not met after %d attempts" % (description, attempt))
            return None
        logger.debug("%s not met (attempt %d), retrying in %s sec" % (description, attempt, interval))
        time.sleep(interval)


def run_local(command, cwd=None):
    """run a local command (list of arguments), raise LocalCommandFailedException on non-zero exit"""
    logger.debug("--> Local command: %s" % ' '.join(command))
    try:
        res = subprocess.run(command, cwd=cwd)
    except OSError as e:
        raise LocalCommandFailedException(command, None, reason=str(e)) from e
    if res.returncode != 0:
        raise LocalCommandFailedException(command, res.returncode)
    return res


def repo_dir_name(git_url):
    """directory name git clone creates for a repository url,
    e.g. git@github.com:someone/chef-repo.git -> chef-repo"""
    name = re.sub(r'/+$', '', git_url)
    name = re.split(r'[/:]', name)[-1]
    return re.sub(r'\.git$', '', name)
