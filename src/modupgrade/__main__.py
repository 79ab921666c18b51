from .modupgrade import main

main()
