import sys

from testrunner.cli.main import cli

sys.exit(cli())
