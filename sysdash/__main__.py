from sysdash.cli import main

main()
