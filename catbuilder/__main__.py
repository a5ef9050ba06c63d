from catbuilder.cli import main

main()
