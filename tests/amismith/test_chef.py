import os
import json
import tarfile
import pytest
import mock
from amismith.config import BuildConfig
from amismith.chef import (
    ChefRepo,
    Provisioner,
    render_solo_rb,
    render_attributes,
    substitute_placeholders
)
from amismith.vars import CHEF_INSTALL_URL
from amismith.exceptions import (
    MalFormattedAttributesException,
    MalFormattedChefRepoException,
    MissingBerksfileException,
    RemoteCommandFailedException
)


def make_repo_tree(path, dirs):
    for d in dirs:
        os.makedirs(os.path.join(path, d))
        with open(os.path.join(path, d, 'README'), 'w') as f:
            f.write(d)


def test_render_solo_rb():
    solo_rb = render_solo_rb('staging', 'api-server')
    assert solo_rb == ("role_path '/var/chef/roles'\n"
                       "environment_path '/var/chef/environments'\n"
                       "environment 'staging'\n"
                       "node_name 'api-server'\n"
                       "cookbook_path ['/var/chef/cookbooks','/var/chef/site-cookbooks']\n")


def test_substitute_placeholders():
    template = '{"api": {"rexster": "#{API_REXSTER_HOST}", "service": "#{AWS_INSTANCE_SERVICE}"}}'
    res = substitute_placeholders(template, {'API_REXSTER_HOST': 'rexster.internal'},
                                  environ={'AWS_INSTANCE_SERVICE': 'api', 'API_REXSTER_HOST': 'ignored'})
    assert res == '{"api": {"rexster": "rexster.internal", "service": "api"}}'


def test_substitute_placeholders_unknown_is_empty():
    res = substitute_placeholders('{"env": "#{AWS_INSTANCE_ENV}"}', {}, environ={})
    assert res == '{"env": ""}'


def test_substitute_placeholders_leaves_ruby_strings():
    # not a placeholder, the name is not an identifier
    res = substitute_placeholders('"#{node[\'ip\']}"', {}, environ={})
    assert res == '"#{node[\'ip\']}"'


def test_render_attributes_adds_run_list():
    res = json.loads(render_attributes('{"api": {"port": 8080}}', 'api', environ={}))
    assert res == {'api': {'port': 8080}, 'run_list': ['role[api]']}


def test_render_attributes_keeps_run_list():
    template = '{"run_list": ["recipe[base]", "role[#{ROLE}]"]}'
    res = json.loads(render_attributes(template, 'api', substitutions={'ROLE': 'worker'}, environ={}))
    assert res == {'run_list': ['recipe[base]', 'role[worker]']}


@pytest.mark.parametrize('template', ['{"api": ', '["role[api]"]'])
def test_render_attributes_malformed(template):
    with pytest.raises(MalFormattedAttributesException):
        render_attributes(template, 'api', environ={})


def test_chef_repo_paths(tmp_path):
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path), 'api')
    assert repo.checkout_dir == os.path.join(str(tmp_path), 'tmp')
    assert repo.path == os.path.join(str(tmp_path), 'tmp', 'chef-repo')
    assert repo.attributes_file == os.path.join(str(tmp_path), 'tmp', 'chef-repo', 'api.attributes.json')


def test_chef_repo_checkout(tmp_path, mocker):
    run_local = mocker.patch('amismith.chef.run_local')
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'release', str(tmp_path), 'api')
    os.makedirs(os.path.join(repo.checkout_dir, 'leftover'))
    repo.checkout()
    assert not os.path.exists(os.path.join(repo.checkout_dir, 'leftover'))
    assert run_local.call_args_list == [
        mock.call(['git', 'clone', 'git@github.com:example/chef-repo.git', '--branch', 'release'],
                  cwd=repo.checkout_dir),
        mock.call(['git', 'submodule', 'init'], cwd=repo.path),
        mock.call(['git', 'submodule', 'update'], cwd=repo.path)
    ]


def test_chef_repo_vendor_cookbooks_with_berkshelf_src(tmp_path, mocker):
    run_local = mocker.patch('amismith.chef.run_local')
    berkshelf_src = tmp_path / 'berkshelf'
    berkshelf_src.mkdir()
    (berkshelf_src / 'api.berksfile').write_text("source 'https://supermarket.chef.io'\ncookbook 'nginx'\n")
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path / 'work'), 'api',
                    berkshelf_src=str(berkshelf_src))
    os.makedirs(repo.path)
    repo.vendor_cookbooks()
    with open(os.path.join(repo.path, 'Berksfile')) as f:
        assert "cookbook 'nginx'" in f.read()
    run_local.assert_called_once_with(['berks', 'vendor', 'cookbooks'], cwd=repo.path)


def test_chef_repo_vendor_cookbooks_without_berksfile(tmp_path, mocker):
    run_local = mocker.patch('amismith.chef.run_local')
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path), 'api')
    os.makedirs(repo.path)
    repo.vendor_cookbooks()
    run_local.assert_not_called()


def test_chef_repo_vendor_cookbooks_missing_berksfile(tmp_path, mocker):
    run_local = mocker.patch('amismith.chef.run_local')
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path / 'work'), 'api',
                    berkshelf_src=str(tmp_path / 'berkshelf'))
    os.makedirs(repo.path)
    with pytest.raises(MissingBerksfileException) as ex:
        repo.vendor_cookbooks()
    assert ex.value.path == os.path.join(str(tmp_path / 'berkshelf'), 'api.berksfile')
    run_local.assert_not_called()


def test_chef_repo_archive(tmp_path):
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path), 'api')
    make_repo_tree(repo.path, ['cookbooks', 'roles', 'environments', 'spec'])
    tarball = repo.archive()
    assert tarball == os.path.join(repo.path, 'chef.tar.gz')
    with tarfile.open(tarball, 'r:gz') as tar:
        names = tar.getnames()
    assert 'cookbooks/README' in names
    assert 'roles/README' in names
    assert 'environments/README' in names
    assert not [n for n in names if n.startswith('spec')]


def test_chef_repo_archive_without_cookbooks(tmp_path):
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path), 'api')
    make_repo_tree(repo.path, ['roles'])
    with pytest.raises(MalFormattedChefRepoException):
        repo.archive()


def test_chef_repo_read_attributes_template(tmp_path):
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path), 'api')
    os.makedirs(repo.path)
    with open(repo.attributes_file, 'w') as f:
        f.write('{"run_list": ["role[api]"]}')
    assert repo.read_attributes_template() == '{"run_list": ["role[api]"]}'


def test_chef_repo_read_attributes_template_missing(tmp_path):
    repo = ChefRepo('git@github.com:example/chef-repo.git', 'master', str(tmp_path), 'api')
    os.makedirs(repo.path)
    with pytest.raises(MalFormattedChefRepoException) as ex:
        repo.read_attributes_template()
    assert 'api.attributes.json' in str(ex.value)


def test_provision(build_kwargs, tmp_path, mocker):
    mocker.patch.object(ChefRepo, 'package', return_value='/work/chef.tar.gz')
    mocker.patch.object(ChefRepo, 'read_attributes_template',
                        return_value='{"api": {"rexster": "#{API_REXSTER_HOST}"}}')
    cfg = BuildConfig(attributes=['API_REXSTER_HOST=rexster.internal'], **build_kwargs)
    remote = mock.MagicMock()
    Provisioner(remote, cfg, str(tmp_path)).provision()

    assert [c[0][0] for c in remote.call.call_args_list] == [
        'sudo apt-get update && sudo apt-get dist-upgrade -y',
        'curl -L %s | sudo bash' % CHEF_INSTALL_URL,
        'sudo mkdir -p /var/chef/',
        'sudo tar -xzf /tmp/chef.tar.gz -C /var/chef/',
        'sudo mkdir -p /etc/chef/',
        'sudo mv /tmp/solo.rb /etc/chef/solo.rb',
        'sudo mv /tmp/attributes.json /etc/chef/attributes.json',
        'sudo chef-solo -c /etc/chef/solo.rb -j /etc/chef/attributes.json -l info'
    ]
    assert [c[0] for c in remote.send.call_args_list] == [
        ('/work/chef.tar.gz', '/tmp/chef.tar.gz'),
        (os.path.join(str(tmp_path), 'solo.rb'), '/tmp/solo.rb'),
        (os.path.join(str(tmp_path), 'attributes.json'), '/tmp/attributes.json')
    ]
    with open(os.path.join(str(tmp_path), 'solo.rb')) as f:
        solo_rb = f.read()
    assert "environment 'staging'" in solo_rb
    assert "node_name 'api-server'" in solo_rb
    with open(os.path.join(str(tmp_path), 'attributes.json')) as f:
        attributes = json.load(f)
    assert attributes == {'api': {'rexster': 'rexster.internal'}, 'run_list': ['role[api]']}


def test_provision_debug_log_level(build_kwargs, tmp_path, mocker, monkeypatch):
    monkeypatch.setenv('DEBUG', 'true')
    cfg = BuildConfig(**build_kwargs)
    remote = mock.MagicMock()
    Provisioner(remote, cfg, str(tmp_path)).converge()
    remote.call.assert_called_once_with('sudo chef-solo -c /etc/chef/solo.rb -j /etc/chef/attributes.json -l debug')


def test_provision_stops_at_first_failure(build_kwargs, tmp_path, mocker):
    package = mocker.patch.object(ChefRepo, 'package')
    cfg = BuildConfig(**build_kwargs)
    remote = mock.MagicMock()
    remote.call.side_effect = [0, RemoteCommandFailedException('curl -L x | sudo bash', 1)]
    with pytest.raises(RemoteCommandFailedException):
        Provisioner(remote, cfg, str(tmp_path)).provision()
    assert remote.call.call_count == 2
    package.assert_not_called()
