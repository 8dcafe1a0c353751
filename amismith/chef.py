"""Package a chef repository locally and converge the instance with chef-solo."""

import os
import re
import json
import shutil
import tarfile
from . import create_logger, debug_enabled
from .utils import (
    run_local,
    repo_dir_name,
    printsection
)
from .vars import (
    CHEF_INSTALL_URL,
    CHEF_TARBALL,
    CHEF_SOLO_DIRS,
    CHEF_REQUIRED_DIRS,
    REMOTE_CHEF_DIR,
    REMOTE_CHEF_CONFIG_DIR,
    REMOTE_SOLO_RB,
    REMOTE_ATTRIBUTES_JSON,
    REMOTE_TMP_DIR
)
from .exceptions import (
    MalFormattedAttributesException,
    MalFormattedChefRepoException,
    MissingBerksfileException
)


logger = create_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r'#\{([A-Za-z_][A-Za-z0-9_]*)\}')


def render_solo_rb(chef_env, node_name, chef_dir=REMOTE_CHEF_DIR):
    return ("role_path '{chef_dir}/roles'\n"
            "environment_path '{chef_dir}/environments'\n"
            "environment '{env}'\n"
            "node_name '{node}'\n"
            "cookbook_path ['{chef_dir}/cookbooks','{chef_dir}/site-cookbooks']\n").format(
                chef_dir=chef_dir, env=chef_env, node=node_name)


def substitute_placeholders(template, substitutions, environ=None):
    """Replace #{NAME} with substitutions[NAME], falling back to the
    environment variable NAME. Unknown names become empty strings."""
    if environ is None:
        environ = os.environ

    def replace(match):
        name = match.group(1)
        if name in substitutions:
            return str(substitutions[name])
        if name in environ:
            return environ[name]
        logger.warning("no value for placeholder #{%s} in chef attributes, using empty string" % name)
        return ''

    return PLACEHOLDER_PATTERN.sub(replace, template)


def render_attributes(template, chef_role, substitutions=None, environ=None):
    """Render the chef-solo attributes json (run list + node attributes)."""
    rendered = substitute_placeholders(template, substitutions or {}, environ=environ)
    try:
        attributes = json.loads(rendered)
    except ValueError as e:
        raise MalFormattedAttributesException("attributes for role %s are not valid json: %s" % (chef_role, str(e)))
    if not isinstance(attributes, dict):
        raise MalFormattedAttributesException("attributes for role %s must be a json object" % chef_role)
    if 'run_list' not in attributes:
        attributes['run_list'] = ['role[%s]' % chef_role]
    return json.dumps(attributes, indent=2)


class ChefRepo(object):
    """Local checkout of the chef repository, packaged for chef-solo."""

    def __init__(self, git_url, branch, workdir, chef_role, berkshelf_src=None):
        self.git_url = git_url
        self.branch = branch
        self.workdir = workdir
        self.chef_role = chef_role
        self.berkshelf_src = berkshelf_src

    @property
    def checkout_dir(self):
        return os.path.join(self.workdir, 'tmp')

    @property
    def path(self):
        return os.path.join(self.checkout_dir, repo_dir_name(self.git_url))

    @property
    def attributes_file(self):
        return os.path.join(self.path, '%s.attributes.json' % self.chef_role)

    def checkout(self):
        # make sure we start from a clean work space
        if os.path.exists(self.checkout_dir):
            shutil.rmtree(self.checkout_dir)
        os.makedirs(self.checkout_dir)
        run_local(['git', 'clone', self.git_url, '--branch', self.branch], cwd=self.checkout_dir)
        # safe even if the repository has no submodules
        run_local(['git', 'submodule', 'init'], cwd=self.path)
        run_local(['git', 'submodule', 'update'], cwd=self.path)

    def vendor_cookbooks(self):
        berksfile = os.path.join(self.path, 'Berksfile')
        if self.berkshelf_src:
            src = os.path.join(self.berkshelf_src, '%s.berksfile' % self.chef_role)
            if not os.path.isfile(src):
                raise MissingBerksfileException(src)
            shutil.copyfile(src, berksfile)
        if not os.path.exists(berksfile):
            logger.info("--> No Berksfile, using the cookbooks of the repository as they are")
            return
        run_local(['berks', 'vendor', 'cookbooks'], cwd=self.path)

    def archive(self, tarball=CHEF_TARBALL):
        """tar up the directories chef-solo can use. Returns the tarball path."""
        tarball_path = os.path.join(self.path, tarball)
        for d in CHEF_REQUIRED_DIRS:
            if not os.path.isdir(os.path.join(self.path, d)):
                raise MalFormattedChefRepoException("chef repository %s has no %s directory" % (self.git_url, d))
        with tarfile.open(tarball_path, 'w:gz') as tar:
            for d in CHEF_SOLO_DIRS:
                if os.path.isdir(os.path.join(self.path, d)):
                    tar.add(os.path.join(self.path, d), arcname=d)
        return tarball_path

    def read_attributes_template(self):
        if not os.path.isfile(self.attributes_file):
            raise MalFormattedChefRepoException("chef repository %s has no %s" % (
                self.git_url, os.path.basename(self.attributes_file)))
        with open(self.attributes_file, 'r') as f:
            return f.read()

    def package(self):
        self.checkout()
        self.vendor_cookbooks()
        return self.archive()


class Provisioner(object):

    def __init__(self, remote, cfg, workdir):
        self.remote = remote
        self.cfg = cfg
        self.workdir = workdir
        self.repo = ChefRepo(cfg.chef_git, cfg.git_branch, workdir, cfg.chef_role,
                             berkshelf_src=cfg.berkshelf_src)

    def update_packages(self):
        self.remote.call("sudo apt-get update && sudo apt-get dist-upgrade -y")

    def install_chef(self):
        self.remote.call("curl -L %s | sudo bash" % CHEF_INSTALL_URL)

    def install_file(self, local_path, remote_path):
        """upload to the tmp dir then move into place with sudo"""
        tmp_path = '%s/%s' % (REMOTE_TMP_DIR, os.path.basename(remote_path))
        self.remote.send(local_path, tmp_path)
        self.remote.call("sudo mv %s %s" % (tmp_path, remote_path))

    def write_local(self, filename, content):
        path = os.path.join(self.workdir, filename)
        with open(path, 'w') as f:
            f.write(content)
        return path

    def upload_cookbooks(self, tarball_path):
        remote_tarball = '%s/%s' % (REMOTE_TMP_DIR, os.path.basename(tarball_path))
        self.remote.call("sudo mkdir -p %s/" % REMOTE_CHEF_DIR)
        self.remote.send(tarball_path, remote_tarball)
        self.remote.call("sudo tar -xzf %s -C %s/" % (remote_tarball, REMOTE_CHEF_DIR))

    def upload_solo_rb(self):
        logger.info("--> Setting up solo.rb")
        solo_rb = render_solo_rb(self.cfg.chef_env, self.cfg.instance_name)
        self.remote.call("sudo mkdir -p %s/" % REMOTE_CHEF_CONFIG_DIR)
        self.install_file(self.write_local('solo.rb', solo_rb), REMOTE_SOLO_RB)

    def upload_attributes(self):
        logger.info("--> Upload Chef attributes")
        attributes = render_attributes(self.repo.read_attributes_template(), self.cfg.chef_role,
                                       substitutions=self.cfg.attributes)
        logger.debug(attributes)
        self.install_file(self.write_local('attributes.json', attributes), REMOTE_ATTRIBUTES_JSON)

    def converge(self):
        log_level = 'debug' if debug_enabled() else 'info'
        self.remote.call("sudo chef-solo -c %s -j %s -l %s" % (REMOTE_SOLO_RB, REMOTE_ATTRIBUTES_JSON, log_level))

    def provision(self):
        printsection("Setting up instance")
        self.update_packages()
        self.install_chef()
        tarball_path = self.repo.package()
        self.upload_cookbooks(tarball_path)
        self.upload_solo_rb()
        self.upload_attributes()
        self.converge()
