from userapi.httpd import main

main()
