from todu.main import main

main()
