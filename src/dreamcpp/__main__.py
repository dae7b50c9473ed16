from dreamcpp.cli import main

main()
