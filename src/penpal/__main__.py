from penpal._cli.main import main

main()
