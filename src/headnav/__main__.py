from headnav.cli import main

main()
