from console_relay.gateway.main import main

main()
