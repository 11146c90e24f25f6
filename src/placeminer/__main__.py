from placeminer.cli import main

main()
