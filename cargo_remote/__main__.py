from cargo_remote.cli import main

main()
