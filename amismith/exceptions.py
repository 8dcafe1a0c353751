# custom exceptions
class AmismithException(Exception):
    """Base class of all the errors that abort an image build."""
    pass


class MissingFieldInBuildConfigException(AmismithException):
    pass


class MalFormattedLaunchResponseException(AmismithException):
    """run_instances response without an instance id or private ip"""
    pass


class MalFormattedImageResponseException(AmismithException):
    """create_image response without an image id"""
    pass


class MalFormattedAttributesException(AmismithException):
    pass


class SSHConnectionTimeoutException(AmismithException):
    pass


class RemoteCommandFailedException(AmismithException):

    def __init__(self, command, exit_status, host=None):
        self.command = command
        self.exit_status = exit_status
        self.host = host
        msg = "command failed with exit status %d: %s" % (exit_status, command)
        if host:
            msg = "%s: %s" % (host, msg)
        super().__init__(msg)


class LocalCommandFailedException(AmismithException):

    def __init__(self, command, exit_status, reason=None):
        self.command = command
        self.exit_status = exit_status
        self.reason = reason
        if reason:
            msg = "local command could not be run (%s): %s" % (reason, ' '.join(command))
        else:
            msg = "local command failed with exit status %d: %s" % (exit_status, ' '.join(command))
        super().__init__(msg)


class AcceptanceTestFailedException(RemoteCommandFailedException):
    pass


class UnknownImageStateException(AmismithException):

    def __init__(self, image_id, state):
        self.image_id = image_id
        self.state = state
        super().__init__("unknown state %s for image %s" % (state, image_id))


class BuildInterruptedException(AmismithException):
    def __init__(self, message=None):
        if not message:
            message = "Build interrupted by a termination signal"
        super().__init__(message)


class ImageCreationTimeoutException(AmismithException):
    pass


class MalFormattedChefRepoException(AmismithException):
    pass


class MissingBerksfileException(AmismithException):

    def __init__(self, path):
        self.path = path
        super().__init__("Berksfile %s does not exist" % path)


class FileTransferFailedException(AmismithException):

    def __init__(self, local_path, remote_path, host=None, reason=None):
        self.local_path = local_path
        self.remote_path = remote_path
        self.host = host
        super().__init__("could not send %s to %s:%s: %s" % (local_path, host, remote_path, reason))
