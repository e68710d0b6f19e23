# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Configuration handler functions."""

import importlib.util
import os
import sys

from compose_build_service import logger


def _load_config_file(filename):
    spec = importlib.util.spec_from_file_location("compose_build_service_conf", filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _config_filename():
    """ Returns the path of the configuration file to load.

    COMPOSE_BUILD_SERVICE_CONFIG_FILE wins, then the system-wide file, then
    conf/config.py from the source tree.
    """
    candidates = [
        os.environ.get("COMPOSE_BUILD_SERVICE_CONFIG_FILE"),
        "/etc/compose-build-service/config.py",
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "conf", "config.py"),
    ]
    for candidate in candidates:
        if candidate and os.path.isfile(candidate):
            return candidate
    raise RuntimeError("No configuration file found, tried: %r" % [c for c in candidates if c])


def _is_testing():
    if os.environ.get("COMPOSE_BUILD_SERVICE_TESTING"):
        return True
    return any("pytest" in arg or "py.test" in arg for arg in sys.argv)


def init_config():
    """ Configure the service and return the (Config, config section) pair.

    The config section is the class from the configuration file that Flask
    reads with app.config.from_object.
    """
    config_module = _load_config_file(_config_filename())

    if _is_testing():
        config_section = "TestConfiguration"
    elif os.environ.get("COMPOSE_BUILD_SERVICE_DEVELOPER_ENV", "").lower() in ("1", "on", "true", "y", "yes"):
        config_section = "DevConfiguration"
    else:
        config_section = "ProdConfiguration"

    config_section_obj = getattr(config_module, config_section)
    conf = Config(config_section_obj)
    return conf, config_section_obj


class Config(object):
    """Class representing the orchestrator configuration."""
    _defaults = {
        'debug': {
            'type': bool,
            'default': False,
            'desc': 'Debug mode'},
        'system': {
            'type': str,
            'default': 'travis',
            'desc': 'The CI system used to run component builds.'},
        'resolver': {
            'type': str,
            'default': 'github',
            'desc': 'How branches are resolved to commits.'},
        'dependencies': {
            'type': dict,
            'default': {},
            'desc': 'Map of component name to the components it depends on.'},
        'github_owner': {
            'type': str,
            'default': '',
            'desc': 'GitHub organization owning all the components.'},
        'github_api_url': {
            'type': str,
            'default': 'https://api.github.com',
            'desc': 'GitHub API URL.'},
        'github_token': {
            'type': str,
            'default': '',
            'desc': 'GitHub API token.'},
        'git_url_prefix': {
            'type': str,
            'default': 'https://github.com/pulumi/',
            'desc': 'Prefix of the git URL of a component, used by the git resolver.'},
        'default_branch': {
            'type': str,
            'default': 'master',
            'desc': 'Branch used when the requested branch does not exist.'},
        'travis_api_url': {
            'type': str,
            'default': 'https://api.travis-ci.com',
            'desc': 'Travis CI API URL.'},
        'travis_token': {
            'type': str,
            'default': '',
            'desc': 'Travis CI API token.'},
        'compose_script': {
            'type': str,
            'default': '../scripts/compose/run-compose',
            'desc': 'Script run by each component build, given the job id.'},
        'publish_backend': {
            'type': str,
            'default': 'none',
            'desc': 'Where resolved commits are published.'},
        'publish_dir': {
            'type': str,
            'default': '',
            'desc': 'Directory used by the file publish backend.'},
        'publish_url': {
            'type': str,
            'default': '',
            'desc': 'Base URL used by the http publish backend.'},
        'net_timeout': {
            'type': float,
            'default': 30,
            'desc': 'Timeout of every external call, in seconds.'},
        'conflict_retries': {
            'type': int,
            'default': 3,
            'desc': 'How many times a conflicting write is retried.'},
        'log_backend': {
            'type': str,
            'default': None,
            'desc': 'Log backend'},
        'log_file': {
            'type': str,
            'default': '',
            'desc': 'Path to log file'},
        'log_level': {
            'type': str,
            'default': 'info',
            'desc': 'Log level'},
        'host': {
            'type': str,
            'default': '0.0.0.0',
            'desc': 'Server hostname'},
        'port': {
            'type': int,
            'default': 5000,
            'desc': 'Server port'},
    }

    def __init__(self, conf_section_obj=None):
        """Initialize the Config object with defaults and then override them
        with runtime values."""

        for name, values in self._defaults.items():
            self.set_item(name, values['default'])

        if conf_section_obj is None:
            return

        for key in dir(conf_section_obj):
            if key.startswith('_') or not key.isupper():
                continue
            self.set_item(key.lower(), getattr(conf_section_obj, key))

        for name in ('travis_token', 'github_token'):
            env_value = os.environ.get('COMPOSE_BUILD_SERVICE_' + name.upper())
            if env_value:
                self.set_item(name, env_value)

        if self.log_backend == "file" and not self.log_file:
            raise ValueError("The file log backend needs log_file")

    def set_item(self, key, value):
        if key == 'set_item' or key.startswith('_'):
            raise Exception("Configuration item's name is not allowed: %s" % key)

        # customized check & set if there's a corresponding handler
        setifok_func = '_setifok_{}'.format(key)
        if hasattr(self, setifok_func):
            getattr(self, setifok_func)(value)
            return

        # managed/registered configuration items
        if key in self._defaults:
            # type conversion for configuration item
            convert = self._defaults[key]['type']
            if convert in [bool, int, float, list, str]:
                try:
                    setattr(self, key, convert(value))
                except (TypeError, ValueError):
                    raise TypeError("Configuration value conversion failed for name: %s" % key)
            # if type is None, do not perform any conversion
            elif convert is None:
                setattr(self, key, value)
            # unknown type/unsupported conversion
            else:
                raise TypeError("Unsupported type %s for configuration item name: %s" % (convert, key))
        # passthrough for unmanaged configuration items
        else:
            setattr(self, key, value)

    def _setifok_system(self, s):
        s = str(s)
        if s not in ("travis",):
            raise ValueError("Unsupported build system: %s." % s)
        self.system = s

    def _setifok_resolver(self, s):
        s = str(s)
        if s not in ("github", "git"):
            raise ValueError("Unsupported resolver: %s." % s)
        self.resolver = s

    def _setifok_dependencies(self, deps):
        if not isinstance(deps, dict):
            raise TypeError("dependencies needs to be a dict.")
        dependencies = {}
        for component, needs in deps.items():
            if isinstance(needs, str) or not hasattr(needs, '__iter__'):
                raise TypeError("dependencies of %s need to be a list." % component)
            dependencies[str(component)] = [str(dep) for dep in needs]
        self.dependencies = dependencies

    def _setifok_publish_backend(self, s):
        s = str(s)
        if s not in ("none", "file", "http"):
            raise ValueError("Unsupported publish backend: %s." % s)
        self.publish_backend = s

    def _setifok_git_url_prefix(self, s):
        prefix = str(s)
        if prefix and prefix[-1] != '/':
            prefix = prefix + '/'
        self.git_url_prefix = prefix

    def _setifok_net_timeout(self, i):
        try:
            i = float(i)
        except (TypeError, ValueError):
            raise TypeError("net_timeout needs to be a number")
        if i <= 0:
            raise ValueError("net_timeout must be > 0")
        self.net_timeout = i

    def _setifok_conflict_retries(self, i):
        if not isinstance(i, int):
            raise TypeError("conflict_retries needs to be an int")
        if i < 0:
            raise ValueError("conflict_retries must be >= 0")
        self.conflict_retries = i

    def _setifok_log_backend(self, s):
        if s is None:
            self.log_backend = "console"
        elif s not in logger.supported_log_backends():
            raise ValueError("Unsupported log backend")
        else:
            self.log_backend = str(s)

    def _setifok_log_file(self, s):
        if s is None:
            self.log_file = ""
        else:
            self.log_file = str(s)

    def _setifok_log_level(self, s):
        level = str(s).lower()
        self.log_level = logger.str_to_log_level(level)
