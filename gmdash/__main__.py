from gmdash.presentation.cli.cli import main

main()
