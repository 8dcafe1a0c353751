"""Run commands on and copy files to the instance being provisioned."""

import socket
import warnings

from cryptography.utils import CryptographyDeprecationWarning
import paramiko

from . import create_logger
from .utils import poll_until
from .vars import (
    SSH_PORT,
    SSH_TIMEOUT,
    SSH_ATTEMPTS,
    SSH_TRIES,
    SSH_RETRY_INTERVAL
)
from .exceptions import (
    RemoteCommandFailedException,
    SSHConnectionTimeoutException,
    FileTransferFailedException
)


logger = create_logger(__name__)


class IgnoreHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Instances are short-lived and ips get reused, so host keys are neither checked nor stored."""
    def missing_host_key(self, client, hostname, key):
        return


def exec_command(client, command):
    """exec_command wrapper that combines stderr/stdout and returns channel"""
    chan = client.get_transport().open_session()

    chan.exec_command(command)
    chan.set_combine_stderr(True)

    stdin = chan.makefile('wb', -1)
    stdout = chan.makefile('rb', -1)

    return chan, stdin, stdout


class RemoteHost(object):

    def __init__(self, hostname, username, key_filename, port=SSH_PORT,
                 timeout=SSH_TIMEOUT, attempts=SSH_ATTEMPTS):
        self.hostname = hostname
        self.username = username
        self.key_filename = key_filename
        self.port = port
        self.timeout = timeout
        self.attempts = attempts
        self._client = None

    def __enter__(self):
        return self

    def __exit__(self, type, value, tb):
        self.close()

    def _connect(self):
        """Open a new connection, trying up to self.attempts times."""
        last_error = None
        # paramiko triggers a CryptographyDeprecationWarning in the cryptography
        # package. Let's suppress
        with warnings.catch_warnings():
            warnings.filterwarnings(
                'ignore', category=CryptographyDeprecationWarning
            )
            for attempt in range(1, self.attempts + 1):
                client = paramiko.SSHClient()
                client.set_missing_host_key_policy(IgnoreHostKeyPolicy())
                try:
                    client.connect(
                        self.hostname,
                        port=self.port,
                        username=self.username,
                        key_filename=self.key_filename,
                        timeout=self.timeout,
                        allow_agent=False,
                        look_for_keys=False,
                    )
                    return client
                except (socket.error, paramiko.SSHException) as e:
                    client.close()
                    last_error = e
                    logger.debug("ssh connection attempt %d to %s failed: %s" % (attempt, self.hostname, str(e)))
        raise last_error

    @property
    def client(self):
        if self._client is None:
            self._client = self._connect()
        return self._client

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def output(self, command):
        """run command and return its combined stdout/stderr and exit status"""
        logger.debug("--> Remote command: %s" % command)
        chan, stdin, stdout = exec_command(self.client, command)
        stdin.close()
        out = stdout.read().decode('utf-8', 'backslashreplace')
        return out, chan.recv_exit_status()

    def call(self, command):
        """run command, streaming its output to the log.
        Raises RemoteCommandFailedException on a non-zero exit status."""
        logger.debug("--> Remote command: %s" % command)
        chan, stdin, stdout = exec_command(self.client, command)
        stdin.close()

        for line in stdout:
            logger.info(line.decode('utf-8', 'backslashreplace').rstrip('\r\n'))

        res = chan.recv_exit_status()
        if res:
            raise RemoteCommandFailedException(command, res, host=self.hostname)
        return res

    def send(self, local_path, remote_path):
        logger.debug("--> Sending %s to %s:%s" % (local_path, self.hostname, remote_path))
        sftp = self.client.open_sftp()
        try:
            sftp.put(str(local_path), remote_path)
        except OSError as e:
            raise FileTransferFailedException(local_path, remote_path, host=self.hostname, reason=str(e)) from e
        finally:
            sftp.close()

    def probe(self):
        """True if we can log in and run a trivial command.
        sshd may be up but still refusing logins right after boot, so any
        connection or authentication error just means not yet."""
        self.close()
        try:
            out, status = self.output('echo OK')
        except (socket.error, paramiko.SSHException) as e:
            logger.debug("ssh probe to %s failed: %s" % (self.hostname, str(e)))
            self.close()
            return False
        return status == 0 and out.strip() == 'OK'


def wait_for_ssh(remote, tries=SSH_TRIES, interval=SSH_RETRY_INTERVAL):
    """Probe the remote host every interval seconds, at most tries times."""
    if not poll_until(remote.probe, interval, max_attempts=tries,
                      description='ssh access to %s' % remote.hostname):
        raise SSHConnectionTimeoutException("Could not get a connection within %d tries." % tries)
    logger.info("Connection granted")
    return remote
