"""Allow ``python -m klinevault``."""

from klinevault.cli import run

if __name__ == "__main__":
    run()
