from traffic_proxy.server import main

main()
