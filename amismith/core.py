import signal
import shutil
import tempfile
import contextlib
from . import create_logger
from .config import BuildConfig
from .utils import printsection
from .ssh import RemoteHost, wait_for_ssh
from .chef import Provisioner
from .ec2_utils import (
    InstanceHandle,
    create_ec2_client,
    launch_instance,
    parse_instance_id,
    parse_private_ip,
    tag_instance,
    create_image,
    wait_for_image,
    terminate_instance
)
from .vars import (
    SSH_TRIES,
    SSH_RETRY_INTERVAL,
    AMI_EXIST_CHECK_INTERVAL,
    REMOTE_ACCEPTANCE_TEST,
    WORKDIR_PREFIX
)
from .exceptions import (
    RemoteCommandFailedException,
    AcceptanceTestFailedException,
    BuildInterruptedException
)


logger = create_logger(__name__)


class BuildContext(object):
    """State shared by the build steps: written once by the step that
    creates it, read by the later ones."""

    def __init__(self, cfg):
        self.cfg = cfg
        self.instance_id = None
        self.private_ip = None
        self.image = None
        self.workdir = None
        self.cleaned_up = False

    @property
    def instance(self):
        if self.instance_id and self.private_ip:
            return InstanceHandle(self.instance_id, self.private_ip)
        return None

    @property
    def image_id(self):
        return self.image.image_id if self.image else None


@contextlib.contextmanager
def sigterm_raises():
    """Turn SIGTERM into BuildInterruptedException for the duration of the block."""
    def handler(signum, frame):
        raise BuildInterruptedException()

    previous = signal.signal(signal.SIGTERM, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


class API(object):

    RemoteHost = RemoteHost
    Provisioner = Provisioner

    def __init__(self, ec2=None, ssh_tries=SSH_TRIES, ssh_retry_interval=SSH_RETRY_INTERVAL,
                 ami_check_interval=AMI_EXIST_CHECK_INTERVAL):
        self.ec2 = ec2
        self.ssh_tries = ssh_tries
        self.ssh_retry_interval = ssh_retry_interval
        self.ami_check_interval = ami_check_interval

    def ec2_client(self, region=None):
        if self.ec2 is None:
            self.ec2 = create_ec2_client(region)
        return self.ec2

    def create_ami(self, **kwargs):
        """Create an image from the given build settings (see BuildConfig)
        and return its id."""
        cfg = BuildConfig(**kwargs)
        return self.build(cfg).image_id

    def build(self, cfg):
        printsection("Reading arguments")
        cfg.log()
        ctx = BuildContext(cfg)
        ec2 = self.ec2_client(cfg.region)
        try:
            with sigterm_raises():
                ctx.workdir = tempfile.mkdtemp(prefix='%s%s_' % (WORKDIR_PREFIX, cfg.instance_name))
                self.start_instance(ctx, ec2)
                with self.RemoteHost(ctx.private_ip, cfg.ssh_user, cfg.key_pair) as remote:
                    self.remote_test(remote)
                    self.setup_instance(ctx, remote)
                    self.test_instance(ctx, remote)
                self.generate_ami(ctx, ec2)
        finally:
            self.clean_up(ctx, ec2)
        return ctx

    def start_instance(self, ctx, ec2):
        printsection("Starting instance")
        res = launch_instance(ec2, ctx.cfg)
        # keep the id before checking the ip so that cleanup can still terminate it
        ctx.instance_id = parse_instance_id(res)
        ctx.private_ip = parse_private_ip(res)
        logger.info("--> Instance %s (%s)" % (ctx.instance_id, ctx.private_ip))
        tag_instance(ec2, ctx.instance_id, ctx.cfg.instance_name)
        return ctx.instance

    def remote_test(self, remote):
        printsection("Waiting for SSH access")
        return wait_for_ssh(remote, tries=self.ssh_tries, interval=self.ssh_retry_interval)

    def setup_instance(self, ctx, remote):
        self.Provisioner(remote, ctx.cfg, ctx.workdir).provision()

    def test_instance(self, ctx, remote):
        if not ctx.cfg.acceptance_test:
            return
        printsection("Running acceptance test")
        remote.send(ctx.cfg.acceptance_test, REMOTE_ACCEPTANCE_TEST)
        try:
            remote.call("bash %s" % REMOTE_ACCEPTANCE_TEST)
        except RemoteCommandFailedException as e:
            raise AcceptanceTestFailedException(e.command, e.exit_status, host=e.host) from e

    def generate_ami(self, ctx, ec2):
        printsection("Generating AMI")
        ctx.image = create_image(ec2, ctx.instance_id, ctx.cfg.image_name)
        wait_for_image(ec2, ctx.image, interval=self.ami_check_interval)
        return ctx.image

    def clean_up(self, ctx, ec2):
        """Terminate the instance (if asked to) and remove the working directory.
        Termination errors are logged, not raised, and the working directory
        goes away even if termination is interrupted."""
        if ctx.cleaned_up:
            return
        ctx.cleaned_up = True
        printsection("Cleaning up")
        try:
            if ctx.cfg.terminate and ctx.instance_id:
                try:
                    terminate_instance(ec2, ctx.instance_id)
                except Exception as e:
                    logger.warning("Could not terminate instance %s: %s" % (ctx.instance_id, str(e)))
            elif ctx.instance_id:
                logger.info("--> Keeping instance %s" % ctx.instance_id)
        finally:
            if ctx.workdir:
                shutil.rmtree(ctx.workdir, ignore_errors=True)

    def wait_for_image(self, image_id, region=None):
        return wait_for_image(self.ec2_client(region), image_id, interval=self.ami_check_interval)
