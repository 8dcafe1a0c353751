"""
CLI for amismith package
"""

# -*- coding: utf-8 -*-
import sys
import argparse
import inspect
import botocore
from ._version import __version__
from . import create_logger, set_debug
from .core import API
from .userdata import write_launch_userdata
from .exceptions import AmismithException
from .vars import (
    DEFAULT_GIT_BRANCH,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_SSH_USER
)

PACKAGE_NAME = 'amismith'

logger = create_logger(__name__)


class Subcommands(object):

    def __init__(self):
        pass

    @property
    def descriptions(self):
        return {
            'create_ami': 'launch an instance, provision it with chef-solo and create an AMI from it',
            'wait_for_image': 'wait until an existing AMI is available',
            'launch_userdata': 'print the user data for instances launched from a created AMI ' +
                               '(e.g. by an autoscaling group)'
        }

    @property
    def args(self):
        return {
            'create_ami':
                [{'flag': ["-n", "--instance-name"],
                  'help': "name of the instance; also the chef node name and the AMI name prefix"},
                 {'flag': ["-p", "--key-pair"],
                  'help': "path to the private key used to ssh into the instance"},
                 {'flag': ["-d", "--key-pair-name"],
                  'help': "name of the EC2 key pair to launch the instance with"},
                 {'flag': ["-i", "--instance-type"],
                  'default': DEFAULT_INSTANCE_TYPE,
                  'help': "instance type (default %s)" % DEFAULT_INSTANCE_TYPE},
                 {'flag': ["-s", "--subnet-id"],
                  'help': "subnet ID"},
                 {'flag': ["-g", "--security-group-id"],
                  'help': "security group ID"},
                 {'flag': ["-a", "--ami-id"],
                  'help': "ID of the base image to start from"},
                 {'flag': ["-r", "--region"],
                  'help': "AWS region (default: region of your AWS configuration)"},
                 {'flag': ["-G", "--chef-git"],
                  'help': "git url of the chef repository"},
                 {'flag': ["-b", "--git-branch"],
                  'default': DEFAULT_GIT_BRANCH,
                  'help': "branch of the chef repository to check out (default %s)" % DEFAULT_GIT_BRANCH},
                 {'flag': ["-c", "--berkshelf-src"],
                  'help': "directory containing <chef-role>.berksfile " +
                          "(default: use the Berksfile of the chef repository, if any)"},
                 {'flag': ["-x", "--chef-role"],
                  'help': "chef role; <chef-role>.attributes.json in the chef repository is used as attributes"},
                 {'flag': ["-e", "--chef-env"],
                  'help': "chef environment"},
                 {'flag': ["-t", "--acceptance-test"],
                  'help': "shell script run on the instance before the image is created"},
                 {'flag': ["-V", "--version-tag"],
                  'help': "version appended to the AMI name (default: VERSION or a time stamp)"},
                 {'flag': ["-N", "--no-terminate"],
                  'help': "do not terminate the instance after the AMI is created",
                  'action': "store_true"},
                 {'flag': ["-z", "--root-size"],
                  'type': int,
                  'help': "size of the root volume in GB (default: ROOT_SIZE or the base image's)"},
                 {'flag': ["-u", "--ssh-user"],
                  'default': DEFAULT_SSH_USER,
                  'help': "user to ssh into the instance as (default %s)" % DEFAULT_SSH_USER},
                 {'flag': ["-A", "--attribute"],
                  'action': "append",
                  'help': "NAME=VALUE to substitute #{NAME} in the chef attributes, can be repeated"}],
            'wait_for_image':
                [{'flag': ["-i", "--image-id"],
                  'help': "AMI ID"},
                 {'flag': ["-r", "--region"],
                  'help': "AWS region"}],
            'launch_userdata':
                [{'flag': ["-p", "--node-name-prefix"],
                  'help': "chef node name prefix; the private ip of the instance is appended"},
                 {'flag': ["-e", "--chef-env"],
                  'default': 'production',
                  'help': "chef environment (default production)"},
                 {'flag': ["-o", "--output"],
                  'help': "write to this file instead of stdout"}]
        }


def create_ami(instance_name, key_pair, key_pair_name, instance_type=DEFAULT_INSTANCE_TYPE, subnet_id=None,
               security_group_id=None, ami_id=None, region=None, chef_git=None, git_branch=DEFAULT_GIT_BRANCH,
               berkshelf_src=None, chef_role=None, chef_env=None, acceptance_test=None, version_tag=None,
               no_terminate=False, root_size=None, ssh_user=DEFAULT_SSH_USER, attribute=None):
    image_id = API().create_ami(instance_name=instance_name, key_pair=key_pair, key_pair_name=key_pair_name,
                                instance_type=instance_type, subnet_id=subnet_id,
                                security_group_id=security_group_id, ami_id=ami_id, region=region,
                                chef_git=chef_git, git_branch=git_branch, berkshelf_src=berkshelf_src,
                                chef_role=chef_role, chef_env=chef_env, acceptance_test=acceptance_test,
                                version_tag=version_tag, terminate=not no_terminate, root_size=root_size,
                                ssh_user=ssh_user, attributes=attribute)
    # print the ami id on its own line so that it is easy to pick up from ci output
    print("AMI-ID: %s" % image_id)
    print("SUCCESS")


def wait_for_image(image_id, region=None):
    image = API().wait_for_image(image_id, region=region)
    print("AMI-ID: %s" % image.image_id)


def launch_userdata(node_name_prefix, chef_env='production', output=None):
    write_launch_userdata(node_name_prefix, chef_env=chef_env, output=output)


def main(Subcommands=Subcommands, argv=None):
    """
    Execute the program from the command line
    """
    scs = Subcommands()

    # the primary parser is used for amismith -v or -h
    primary_parser = argparse.ArgumentParser(prog=PACKAGE_NAME, add_help=False)
    primary_parser.add_argument('-v', '--version', action='version',
                                version='%(prog)s ' + __version__)
    primary_parser.add_argument('--debug', action='store_true',
                                help='verbose output (same as DEBUG=true)')
    # the secondary parser is used for the specific run mode
    secondary_parser = argparse.ArgumentParser(prog=PACKAGE_NAME, parents=[primary_parser])
    subparsers = secondary_parser.add_subparsers(
        title=PACKAGE_NAME + ' subcommands',
        description='choose one of the following subcommands to run ' + PACKAGE_NAME,
        dest='subcommand',
        metavar='subcommand: {%s}' % ', '.join(scs.descriptions.keys())
    )
    subparsers.required = True

    def add_arg(name, flag, **kwargs):
        subparser[name].add_argument(flag[0], flag[1], **kwargs)

    def add_args(name, argdictlist):
        for argdict in argdictlist:
            add_arg(name, **argdict)

    subparser = dict()
    for sc, desc in scs.descriptions.items():
        subparser[sc] = subparsers.add_parser(sc, help=desc, description=desc)
        if sc in scs.args:
            add_args(sc, scs.args[sc])

    # two step argument parsing
    # first check for top level -v or -h (i.e. `amismith -v`)
    (primary_namespace, remaining) = primary_parser.parse_known_args(argv)
    # get subcommand-specific args
    args = secondary_parser.parse_args(args=remaining, namespace=primary_namespace)
    if args.debug:
        set_debug()
    subcommandf = globals()[args.subcommand]
    sc_args = [getattr(args, sc_arg) for sc_arg in inspect.getfullargspec(subcommandf).args]
    # run subcommand
    try:
        subcommandf(*sc_args)
    except (AmismithException, botocore.exceptions.ClientError) as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        sys.exit(1)


if __name__ == '__main__':
    main()
