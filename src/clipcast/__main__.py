from clipcast.cli import main

main()
