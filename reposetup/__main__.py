"""Allow ``python -m reposetup``."""

from reposetup.main import cli

if __name__ == "__main__":
    cli()
