from kit import play

if __name__ == "__main__":
    play(lambda history: "R")
