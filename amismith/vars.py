import os
from datetime import datetime
from . import debug_enabled


# AWS
AWS_REGION = os.environ.get('AMISMITH_AWS_REGION', '') or os.environ.get('AWS_DEFAULT_REGION', '')

# root volume override, e.g. ROOT_SIZE=30 (GB)
ROOT_SIZE = os.environ.get('ROOT_SIZE', '')
ROOT_DEVICE_NAME = '/dev/sda1'

DEBUG = debug_enabled()

# version tag of the resulting image, defaults to a time stamp
VERSION_TIMESTAMP_FORMAT = '%Y-%m-%d-%H-%M'


def default_version():
    return os.environ.get('VERSION', '') or datetime.strftime(datetime.now(), VERSION_TIMESTAMP_FORMAT)


# instance defaults
DEFAULT_INSTANCE_TYPE = 't2.micro'
DEFAULT_SSH_USER = 'ubuntu'

# ssh
# connection timeout is long because sshd may take minutes to come up on a fresh instance
SSH_PORT = 22
SSH_TIMEOUT = 300
SSH_ATTEMPTS = 3
SSH_TRIES = 30
SSH_RETRY_INTERVAL = 10

# ami
AMI_EXIST_CHECK_INTERVAL = 60
AMI_STATE_PENDING = 'pending'
AMI_STATE_AVAILABLE = 'available'

# chef
DEFAULT_GIT_BRANCH = os.environ.get('GIT_BRANCH', '') or 'master'
CHEF_INSTALL_URL = os.environ.get('CHEF_INSTALL_URL', 'https://omnitruck.chef.io/install.sh')
CHEF_TARBALL = 'chef.tar.gz'
# directories chef-solo knows how to use; cookbooks is the only mandatory one
CHEF_SOLO_DIRS = ['environments', 'roles', 'cookbooks', 'data_bags', 'site-cookbooks']
CHEF_REQUIRED_DIRS = ['cookbooks']

REMOTE_CHEF_DIR = '/var/chef'
REMOTE_CHEF_CONFIG_DIR = '/etc/chef'
REMOTE_SOLO_RB = REMOTE_CHEF_CONFIG_DIR + '/solo.rb'
REMOTE_ATTRIBUTES_JSON = REMOTE_CHEF_CONFIG_DIR + '/attributes.json'
REMOTE_TMP_DIR = '/tmp'
REMOTE_ACCEPTANCE_TEST = REMOTE_TMP_DIR + '/test.sh'

WORKDIR_PREFIX = 'create_ami_'
