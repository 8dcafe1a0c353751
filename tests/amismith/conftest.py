import os
import pytest
import mock
from amismith.core import API


def launch_response(instance_id='i-0abc1234', private_ip='10.0.1.5'):
    instance = {'ImageId': 'ami-base', 'InstanceType': 't2.micro', 'State': {'Code': 0, 'Name': 'pending'}}
    if instance_id:
        instance['InstanceId'] = instance_id
    if private_ip:
        instance['PrivateIpAddress'] = private_ip
    return {'Groups': [], 'Instances': [instance], 'OwnerId': '123456789012', 'ReservationId': 'r-0123'}


def describe_images_responses(*states, image_id='ami-new'):
    return [{'Images': [{'ImageId': image_id, 'Name': 'api-server-1', 'State': state}]} for state in states]


@pytest.fixture
def build_kwargs():
    return {'instance_name': 'api-server',
            'key_pair': '/keys/build.pem',
            'key_pair_name': 'build',
            'ami_id': 'ami-base',
            'subnet_id': 'subnet-1',
            'security_group_id': 'sg-1',
            'chef_git': 'git@github.com:example/chef-repo.git',
            'chef_role': 'api',
            'chef_env': 'staging',
            'version_tag': '2020-11-13-10-00'}


@pytest.fixture
def ec2():
    ec2 = mock.MagicMock()
    ec2.run_instances.return_value = launch_response()
    ec2.create_image.return_value = {'ImageId': 'ami-new'}
    ec2.describe_images.side_effect = describe_images_responses('pending', 'available')
    return ec2


class FakeRemoteHost(object):
    """stands in for RemoteHost; becomes reachable at the probe_results[-1] probe"""

    probe_results = [False, False, True]
    instances = []

    def __init__(self, hostname, username, key_filename):
        self.hostname = hostname
        self.username = username
        self.key_filename = key_filename
        self.results = list(self.probe_results)
        self.probes = 0
        self.calls = []
        self.sent = []
        self.closed = False
        FakeRemoteHost.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, type, value, tb):
        self.closed = True

    def probe(self):
        self.probes += 1
        if self.results:
            return self.results.pop(0)
        return True

    def call(self, command):
        self.calls.append(command)
        return 0

    def send(self, local_path, remote_path):
        self.sent.append((local_path, remote_path))


@pytest.fixture
def fake_remote():
    FakeRemoteHost.instances = []
    FakeRemoteHost.probe_results = [False, False, True]
    return FakeRemoteHost


@pytest.fixture
def api(ec2, fake_remote, mocker):
    """API with mocked EC2, ssh and provisioning, no waiting between polls"""
    api = API(ec2=ec2, ssh_retry_interval=0, ami_check_interval=0)
    mocker.patch.object(API, 'RemoteHost', fake_remote)
    mocker.patch.object(API, 'Provisioner')
    mocker.spy(api, 'clean_up')
    return api


@pytest.fixture
def workdir(tmp_path, mocker):
    """the working directory the build creates, at a known place"""
    path = str(tmp_path / 'create_ami_api-server')

    def mkdtemp(prefix=None):
        os.makedirs(path)
        return path

    mocker.patch('amismith.core.tempfile.mkdtemp', side_effect=mkdtemp)
    return path
