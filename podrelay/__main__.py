from podrelay.cli import main

main()
