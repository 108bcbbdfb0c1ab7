from raccoon.main import cli

cli()
