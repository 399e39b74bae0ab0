from mvvm_counter.cli import main

main()
