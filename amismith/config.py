import copy
from . import create_logger
from .vars import (
    ROOT_SIZE,
    AWS_REGION,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_SSH_USER,
    DEFAULT_GIT_BRANCH,
    default_version
)
from .exceptions import (
    MissingFieldInBuildConfigException,
    MalFormattedAttributesException
)


logger = create_logger(__name__)


class SerializableObject(object):
    def __init__(self):
        pass

    def update(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)

    def as_dict(self):
        # use deepcopy so that changing this dictionary later won't affect the object
        d = copy.deepcopy(self.__dict__)
        return {k: v for k, v in d.items() if v is not None and not k.startswith('_')}


class BuildConfig(SerializableObject):
    """Everything needed to bake one image. Read-only once built."""

    required_fields = ['instance_name', 'key_pair', 'key_pair_name', 'ami_id', 'chef_git', 'chef_role']

    fields = ['instance_name', 'key_pair', 'key_pair_name', 'instance_type', 'subnet_id',
              'security_group_id', 'ami_id', 'region', 'chef_git', 'git_branch', 'berkshelf_src',
              'chef_role', 'chef_env', 'acceptance_test', 'version_tag', 'terminate', 'root_size',
              'ssh_user', 'attributes']

    def __init__(self, fill_default=True, **kwargs):
        self._frozen = False
        unknown = set(kwargs) - set(self.fields)
        if unknown:
            raise TypeError("unknown build config field(s): %s" % ', '.join(sorted(unknown)))
        for field in self.fields:
            setattr(self, field, kwargs.get(field, None))
        if fill_default:
            self.fill_default()
        self.check_required()
        self._frozen = True

    def __setattr__(self, name, value):
        if getattr(self, '_frozen', False):
            raise AttributeError("BuildConfig is read-only (tried to set %s)" % name)
        super().__setattr__(name, value)

    def update(self, **kwargs):
        raise AttributeError("BuildConfig is read-only")

    def fill_default(self):
        if not self.instance_type:
            self.instance_type = DEFAULT_INSTANCE_TYPE
        if not self.region:
            self.region = AWS_REGION or None
        if not self.git_branch:
            self.git_branch = DEFAULT_GIT_BRANCH
        if not self.chef_env:
            self.chef_env = '_default'
        if not self.version_tag:
            self.version_tag = default_version()
        if self.terminate is None:
            self.terminate = True
        if not self.root_size:
            self.root_size = ROOT_SIZE or None
        if self.root_size is not None:
            self.root_size = int(self.root_size)
        if not self.ssh_user:
            self.ssh_user = DEFAULT_SSH_USER
        self.attributes = parse_attributes(self.attributes)

    def check_required(self):
        for field in self.required_fields:
            if not getattr(self, field, None):
                raise MissingFieldInBuildConfigException("field %s is required to create an image" % field)

    @property
    def image_name(self):
        return '%s-%s' % (self.instance_name, self.version_tag)

    def log(self):
        for k, v in self.as_dict().items():
            logger.info("--> %s: %s" % (k.replace('_', ' ').capitalize(), v))


def parse_attributes(attributes):
    """turn ['NAME=VALUE', ...] (or a dict) into a dictionary of placeholder values"""
    if not attributes:
        return {}
    if isinstance(attributes, dict):
        return dict(attributes)
    parsed = dict()
    for item in attributes:
        if '=' not in item:
            raise MalFormattedAttributesException("attribute must be NAME=VALUE: %s" % item)
        name, value = item.split('=', 1)
        if not name:
            raise MalFormattedAttributesException("attribute name is empty: %s" % item)
        parsed[name] = value
    return parsed
