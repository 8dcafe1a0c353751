import boto3
import botocore
from . import create_logger
from .utils import poll_until
from .vars import (
    ROOT_DEVICE_NAME,
    AMI_EXIST_CHECK_INTERVAL,
    AMI_STATE_PENDING,
    AMI_STATE_AVAILABLE
)
from .exceptions import (
    MalFormattedLaunchResponseException,
    MalFormattedImageResponseException,
    UnknownImageStateException,
    ImageCreationTimeoutException
)


logger = create_logger(__name__)


class InstanceHandle(object):
    def __init__(self, instance_id, private_ip):
        self.instance_id = instance_id
        self.private_ip = private_ip

    def __repr__(self):
        return 'InstanceHandle(%s, %s)' % (self.instance_id, self.private_ip)


class ImageHandle(object):
    def __init__(self, image_id, name=None, state=None):
        self.image_id = image_id
        self.name = name
        self.state = state

    def __repr__(self):
        return 'ImageHandle(%s, %s)' % (self.image_id, self.state)


def create_ec2_client(region=None):
    if region:
        return boto3.client('ec2', region_name=region)
    return boto3.client('ec2')


def create_launch_args(cfg):
    launch_args = {'ImageId': cfg.ami_id,
                   'InstanceType': cfg.instance_type,
                   'KeyName': cfg.key_pair_name,
                   'MaxCount': 1,
                   'MinCount': 1}
    if cfg.security_group_id:
        launch_args.update({'SecurityGroupIds': [cfg.security_group_id]})
    if cfg.subnet_id:
        launch_args.update({'SubnetId': cfg.subnet_id})
    if cfg.root_size:
        launch_args.update({'BlockDeviceMappings': [{'DeviceName': ROOT_DEVICE_NAME,
                                                     'Ebs': {'VolumeSize': cfg.root_size}}]})
    return launch_args


def launch_instance(ec2, cfg):
    """run_instances with the build config and return the raw response"""
    launch_args = create_launch_args(cfg)
    logger.debug("launch_args=" + str(launch_args))
    res = ec2.run_instances(**launch_args)
    logger.debug("response from EC2 run_instances :" + str(res))
    return res


def _first_instance(res):
    try:
        return res['Instances'][0]
    except (KeyError, IndexError, TypeError):
        return {}


def parse_instance_id(res):
    instance_id = _first_instance(res).get('InstanceId', '')
    if not instance_id:
        raise MalFormattedLaunchResponseException("Could not read Instance ID")
    return instance_id


def parse_private_ip(res):
    private_ip = _first_instance(res).get('PrivateIpAddress', '')
    if not private_ip:
        raise MalFormattedLaunchResponseException("Could not read Private IP Address")
    return private_ip


def parse_launch_response(res):
    return InstanceHandle(parse_instance_id(res), parse_private_ip(res))


def tag_instance(ec2, instance_id, name):
    """Name tag for the instance. Failure here does not stop the build."""
    try:
        ec2.create_tags(Resources=[instance_id], Tags=[{'Key': 'Name', 'Value': name}])
    except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as e:
        logger.warning("Could not tag instance %s with name %s: %s" % (instance_id, name, str(e)))
        return False
    return True


def create_image(ec2, instance_id, name):
    logger.info("--> Creating image %s from instance %s" % (name, instance_id))
    res = ec2.create_image(InstanceId=instance_id, Name=name)
    logger.debug("response from EC2 create_image :" + str(res))
    image_id = res.get('ImageId', '') if res else ''
    if not image_id:
        raise MalFormattedImageResponseException("Could not read AMI ID")
    return ImageHandle(image_id, name=name)


def get_image_state(ec2, image_id):
    """current state of an image. An image that is not visible yet
    (right after create_image) is reported as pending."""
    try:
        res = ec2.describe_images(ImageIds=[image_id])
    except botocore.exceptions.ClientError as e:
        if e.response.get('Error', {}).get('Code') == 'InvalidAMIID.NotFound':
            return AMI_STATE_PENDING
        raise
    images = res.get('Images', [])
    if not images:
        return AMI_STATE_PENDING
    return images[0].get('State', '')


def wait_for_image(ec2, image, interval=AMI_EXIST_CHECK_INTERVAL, max_attempts=None):
    """Poll until the image is available.
    pending keeps polling, any other state raises UnknownImageStateException right away.
    """
    if not isinstance(image, ImageHandle):
        image = ImageHandle(image)

    def image_available():
        image.state = get_image_state(ec2, image.image_id)
        logger.info("--> Image %s state: %s" % (image.image_id, image.state))
        if image.state == AMI_STATE_AVAILABLE:
            return True
        if image.state == AMI_STATE_PENDING:
            return False
        raise UnknownImageStateException(image.image_id, image.state)

    if not poll_until(image_available, interval, max_attempts=max_attempts,
                      description='image %s available' % image.image_id):
        raise ImageCreationTimeoutException("Image %s still %s after %d checks"
                                            % (image.image_id, image.state, max_attempts))
    return image


def terminate_instance(ec2, instance_id):
    logger.info("--> Terminating instance %s" % instance_id)
    ec2.terminate_instances(InstanceIds=[instance_id])
