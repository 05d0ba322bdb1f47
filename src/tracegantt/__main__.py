from tracegantt.cli import main

main()
