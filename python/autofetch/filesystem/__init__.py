from .protocol import CommandResult, FileSystemClient, ShellClient
from .ssh import SshFileSystemClient
from .paramiko_client import ParamikoShellClient

__all__ = ["CommandResult", "FileSystemClient", "ShellClient", "SshFileSystemClient", "ParamikoShellClient"]
