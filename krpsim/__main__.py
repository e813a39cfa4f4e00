from krpsim.cli import main

main()
