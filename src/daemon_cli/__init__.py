"""daemon-cli - command-line client for a remote daemon.

The client forwards invocations to the daemon over HTTP, either through a
local unix socket or over TCP, optionally secured with TLS.

Layout:
- cli: process entry point (global options, exit handling)
- client: DaemonCli, the per-invocation client context
- registry: handler registry and command resolution
- commands: built-in commands (help, version, ping)
- flags: per-command option parsing
- transport: connection settings and HTTP client construction
- terminal: terminal detection for the client streams
- config: stored configuration and credentials
- formatting: output templates
- errors: error types and exit requests
"""

__version__ = "0.1.0"

PROG_NAME = "daemon-cli"
