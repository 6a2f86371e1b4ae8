from solarpos.main import main

main()
