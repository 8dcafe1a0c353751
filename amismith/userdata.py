from . import create_logger
from .chef import render_solo_rb
from .vars import (
    REMOTE_SOLO_RB,
    REMOTE_ATTRIBUTES_JSON
)


logger = create_logger(__name__)


def render_launch_userdata(node_name_prefix, chef_env='production'):
    """User data for instances started from a baked image (e.g. by an autoscaling group).
    Gives the node a unique name based on its private ip and runs chef-solo
    once more so the final environment settings are applied."""
    solo_rb = render_solo_rb(chef_env, '%s-${internalIp}' % node_name_prefix)
    str = ''
    str += "#!/bin/bash\n"
    str += "# determine the private ip address of the machine, dots replaced by dashes\n"
    str += "internalIp=`hostname -I | awk '{print $1}'`\n"
    str += "internalIp=${internalIp//./-}\n"
    str += "\n"
    str += "cat > %s <<EOC\n" % REMOTE_SOLO_RB
    str += solo_rb
    str += "EOC\n"
    str += "\n"
    str += "chef-solo -c %s -j %s\n" % (REMOTE_SOLO_RB, REMOTE_ATTRIBUTES_JSON)
    logger.debug("userdata: \n" + str)
    return str


def write_launch_userdata(node_name_prefix, chef_env='production', output=None):
    userdata = render_launch_userdata(node_name_prefix, chef_env)
    if output:
        with open(output, 'w') as f:
            f.write(userdata)
    else:
        print(userdata, end='')
    return userdata
