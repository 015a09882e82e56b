from graphtxn.cli import main

main()
