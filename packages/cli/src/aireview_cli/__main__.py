from aireview_cli.cli import main

main()
