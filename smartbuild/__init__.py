"""smartbuild - builds the packages of a pnpm workspace in dependency order."""

__version__ = "0.1.0"
