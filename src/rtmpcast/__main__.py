from rtmpcast.cli import main

main()
